from knife_server.aws_provider.security_group import (
    CHEF_SERVER_PORTS,
    configure_chef_server_group,
    find_security_group,
)

from fakes import FakeEC2


def test_creates_missing_group_with_description():
    ec2 = FakeEC2()

    group_id = configure_chef_server_group(ec2, "infrastructure", "infrastructure group")

    assert ec2.created == ["infrastructure"]
    assert ec2.groups["infrastructure"]["GroupId"] == group_id
    assert ec2.groups["infrastructure"]["Description"] == "infrastructure group"


def test_second_configure_creates_nothing():
    ec2 = FakeEC2()

    first = configure_chef_server_group(ec2, "infrastructure", "infrastructure group")
    authorized = len(ec2.authorized)
    second = configure_chef_server_group(ec2, "infrastructure", "infrastructure group")

    assert first == second
    assert ec2.created == ["infrastructure"]
    assert len(ec2.authorized) == authorized


def test_ingress_rules_cover_group_and_public_ports():
    ec2 = FakeEC2()
    group_id = configure_chef_server_group(ec2, "chef", "chef group")

    perms = ec2.groups["chef"]["IpPermissions"]
    self_rules = {(p['IpProtocol'], p['FromPort'], p['ToPort']) for p in perms if 'UserIdGroupPairs' in p}
    public_ports = sorted(p['FromPort'] for p in perms if 'IpRanges' in p)

    assert self_rules == {('icmp', -1, -1), ('tcp', 0, 65535), ('udp', 0, 65535)}
    assert all(p['UserIdGroupPairs'] == [{'GroupId': group_id}] for p in perms if 'UserIdGroupPairs' in p)
    assert public_ports == sorted(CHEF_SERVER_PORTS)


def test_existing_group_only_gets_missing_rules():
    ec2 = FakeEC2()
    ec2.groups["web"] = {
        'GroupId': 'sg-web',
        'GroupName': 'web',
        'Description': 'web group',
        'IpPermissions': [
            {'IpProtocol': 'tcp', 'FromPort': 22, 'ToPort': 22, 'IpRanges': [{'CidrIp': '0.0.0.0/0'}]},
        ],
    }

    configure_chef_server_group(ec2, "web", "web group")

    assert ec2.created == []
    assert not any(p.get('FromPort') == 22 and 'IpRanges' in p for p in ec2.authorized)
    assert len(ec2.authorized) == 5


def test_find_security_group_absent():
    assert find_security_group(FakeEC2(), "nope") is None


def _other_vpc_group(group_id: str, name: str, vpc_id: str = "vpc-other") -> dict:
    return {'GroupId': group_id, 'GroupName': name, 'Description': '', 'VpcId': vpc_id, 'IpPermissions': []}


def test_same_name_in_another_vpc_is_ignored():
    ec2 = FakeEC2()
    ec2.other_vpc_groups.append(_other_vpc_group("sg-other", "infrastructure"))
    configure_chef_server_group(ec2, "infrastructure", "infrastructure group")
    default_id = ec2.groups["infrastructure"]["GroupId"]
    ec2.created.clear()

    group_id = configure_chef_server_group(ec2, "infrastructure", "infrastructure group")

    assert group_id == default_id
    assert ec2.created == []
    assert ec2.other_vpc_groups[0]['IpPermissions'] == []


def test_group_only_in_another_vpc_is_created_in_default():
    ec2 = FakeEC2()
    ec2.other_vpc_groups.append(_other_vpc_group("sg-other", "infrastructure"))

    group_id = configure_chef_server_group(ec2, "infrastructure", "infrastructure group")

    assert ec2.created == ["infrastructure"]
    assert group_id != "sg-other"


def test_duplicate_names_without_default_vpc_take_first():
    ec2 = FakeEC2(default_vpc=None)
    ec2.other_vpc_groups.extend([
        _other_vpc_group("sg-a", "infrastructure", "vpc-a"),
        _other_vpc_group("sg-b", "infrastructure", "vpc-b"),
    ])

    group = find_security_group(ec2, "infrastructure")

    assert group is not None
    assert group.security_group_id == "sg-a"
