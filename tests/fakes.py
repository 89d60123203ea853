from typing import Dict, List, Optional

from knife_server.aws_provider.types import InstanceInfoWithTag


class FakeEC2:
    """Just enough of the boto3 EC2 client for security groups and instances."""

    DEFAULT_VPC = "vpc-default"

    def __init__(self, reservations: Optional[List[dict]] = None, default_vpc: Optional[str] = DEFAULT_VPC):
        # groups in the default VPC, by name
        self.groups: Dict[str, dict] = {}
        # groups living in other VPCs
        self.other_vpc_groups: List[dict] = []
        self.default_vpc = default_vpc
        self.created: List[str] = []
        self.authorized: List[dict] = []
        self.reservations = reservations or []

    def describe_vpcs(self, Filters, **kwargs):
        if self.default_vpc is None:
            return {'Vpcs': []}
        return {'Vpcs': [{'VpcId': self.default_vpc, 'IsDefault': True}]}

    def describe_security_groups(self, Filters, **kwargs):
        values = {f['Name']: f['Values'][0] for f in Filters}
        groups = list(self.groups.values()) + self.other_vpc_groups
        return {'SecurityGroups': [
            g for g in groups
            if g['GroupName'] == values['group-name']
            and values.get('vpc-id', g.get('VpcId', self.default_vpc)) == g.get('VpcId', self.default_vpc)
        ]}

    def create_security_group(self, GroupName, Description):
        group_id = f"sg-{len(self.groups) + len(self.other_vpc_groups) + 1}"
        self.groups[GroupName] = {
            'GroupId': group_id,
            'GroupName': GroupName,
            'Description': Description,
            'VpcId': self.default_vpc,
            'IpPermissions': [],
        }
        self.created.append(GroupName)
        return {'GroupId': group_id}

    def authorize_security_group_ingress(self, GroupId, IpPermissions):
        for group in self.groups.values():
            if group['GroupId'] == GroupId:
                group['IpPermissions'].extend(IpPermissions)
        self.authorized.extend(IpPermissions)

    def describe_instances(self, **kwargs):
        return {'Reservations': self.reservations}


def ec2_instance(instance_id: str, state: str = "running", dns: str = "", ip: Optional[str] = None, **tags) -> dict:
    instance = {
        'InstanceId': instance_id,
        'State': {'Name': state},
        'PublicDnsName': dns,
        'Tags': [{'Key': k, 'Value': v} for k, v in tags.items()],
    }
    if ip:
        instance['PublicIpAddress'] = ip
    return instance


def chef_server(instance_id: str, node_name: str, dns: str, state: str = "running", role: str = "chef_server") -> InstanceInfoWithTag:
    return InstanceInfoWithTag(
        instance_id=instance_id,
        state=state,
        dns_name=dns,
        public_ip=None,
        tags={'Name': node_name, 'Role': role},
    )
