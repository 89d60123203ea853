from knife_server.aws_provider.instance import get_instances_with_tag

from fakes import FakeEC2, ec2_instance


def test_listing_keeps_order_and_skips_terminated():
    ec2 = FakeEC2(reservations=[
        {'Instances': [ec2_instance("i-1", dns="a.example", Name="chef")]},
        {'Instances': [
            ec2_instance("i-2", state="terminated", Name="chef"),
            ec2_instance("i-3", state="pending", ip="10.0.0.3"),
        ]},
    ])

    instances = get_instances_with_tag(ec2)

    assert [i.instance_id for i in instances] == ["i-1", "i-3"]
    assert instances[0].tags == {"Name": "chef"}
    assert instances[0].address == "a.example"
    assert instances[1].tags == {}
    assert instances[1].address == "10.0.0.3"


def test_listing_follows_next_token():
    class _PagedEC2:
        def __init__(self):
            self.calls = []

        def describe_instances(self, **kwargs):
            self.calls.append(kwargs)
            if not kwargs:
                return {'Reservations': [{'Instances': [ec2_instance("i-1")]}], 'NextToken': 't1'}
            return {'Reservations': [{'Instances': [ec2_instance("i-2")]}]}

    ec2 = _PagedEC2()
    instances = get_instances_with_tag(ec2)

    assert [i.instance_id for i in instances] == ["i-1", "i-2"]
    assert ec2.calls == [{}, {'NextToken': 't1'}]
