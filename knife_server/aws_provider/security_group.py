# pyright: reportTypedDictNotRequiredAccess=false

from typing import List, Optional

from loguru import logger

from .types import IngressRule, SecurityGroupInfo
from .vpc import get_default_vpc_id

from mypy_boto3_ec2.client import EC2Client
from mypy_boto3_ec2.type_defs import SecurityGroupTypeDef


WORLD_CIDR = "0.0.0.0/0"
# chef server API and Web UI
CHEF_SERVER_PORTS = [22, 4000, 4040]


def as_security_group_info(rep: SecurityGroupTypeDef):
    security_group_id = rep['GroupId']
    security_group_name = rep['GroupName']

    assert type(security_group_id) is str
    assert type(security_group_name) is str

    return SecurityGroupInfo(
        security_group_id=security_group_id,
        security_group_name=security_group_name,
        ip_permissions=list(rep.get('IpPermissions', [])),
    )


def find_security_group(client: EC2Client, security_group_name: str, vpc_id: Optional[str] = None) -> Optional[SecurityGroupInfo]:
    """First group with this name, within ``vpc_id`` when given."""
    filters = [{'Name': 'group-name', 'Values': [security_group_name]}]
    if vpc_id:
        filters.append({'Name': 'vpc-id', 'Values': [vpc_id]})

    result = []

    next_token = None
    while True:
        kwargs = dict()
        if next_token:
            kwargs['NextToken'] = next_token

        rep = client.describe_security_groups(Filters=filters, **kwargs)  # pyright: ignore[reportArgumentType]
        result.extend([as_security_group_info(sg) for sg in rep['SecurityGroups']])

        next_token = rep.get('NextToken')
        if not next_token:
            break

    if len(result) == 0:
        return None
    if len(result) > 1:
        logger.warning(f"{len(result)} security groups named {security_group_name}, using {result[0].security_group_id}")
    return result[0]


def create_security_group(client: EC2Client, security_group_name: str, description: str) -> str:
    rep = client.create_security_group(
        GroupName=security_group_name,
        Description=description,
    )

    security_group_id = rep['GroupId']
    assert type(security_group_id) is str
    return security_group_id


def chef_server_ingress_rules(security_group_id: str) -> List[IngressRule]:
    rules = [
        IngressRule('icmp', -1, -1, source_group_id=security_group_id),
        IngressRule('tcp', 0, 65535, source_group_id=security_group_id),
        IngressRule('udp', 0, 65535, source_group_id=security_group_id),
    ]
    rules.extend(IngressRule('tcp', port, port, cidr_ip=WORLD_CIDR) for port in CHEF_SERVER_PORTS)
    return rules


def permission_exists(ip_permissions: List[dict], rule: IngressRule) -> bool:
    for perm in ip_permissions:
        if perm.get('IpProtocol') != rule.protocol:
            continue
        if perm.get('FromPort') != rule.from_port or perm.get('ToPort') != rule.to_port:
            continue
        if rule.cidr_ip is not None:
            if any(r.get('CidrIp') == rule.cidr_ip for r in perm.get('IpRanges', [])):
                return True
        elif any(p.get('GroupId') == rule.source_group_id for p in perm.get('UserIdGroupPairs', [])):
            return True
    return False


def as_ip_permission(rule: IngressRule) -> dict:
    perm = {
        'IpProtocol': rule.protocol,
        'FromPort': rule.from_port,
        'ToPort': rule.to_port,
    }
    if rule.cidr_ip is not None:
        perm['IpRanges'] = [{'CidrIp': rule.cidr_ip}]
    else:
        perm['UserIdGroupPairs'] = [{'GroupId': rule.source_group_id}]
    return perm


def configure_chef_server_group(client: EC2Client, security_group_name: str, description: str) -> str:
    # run_instances resolves group names in the default VPC only
    vpc_id = get_default_vpc_id(client)
    group = find_security_group(client, security_group_name, vpc_id)

    if group is None:
        logger.info(f"Creating EC2 Security Group {security_group_name}")
        security_group_id = create_security_group(client, security_group_name, description)
        ip_permissions = []
    else:
        logger.debug(f"EC2 Security Group {security_group_name} exists, skipping creation")
        security_group_id = group.security_group_id
        ip_permissions = group.ip_permissions

    for rule in chef_server_ingress_rules(security_group_id):
        if permission_exists(ip_permissions, rule):
            logger.debug(f"Inbound security group rule {rule.describe()} exists")
            continue

        logger.info(f"Creating inbound security group rule for {rule.describe()}")
        client.authorize_security_group_ingress(
            GroupId=security_group_id,
            IpPermissions=[as_ip_permission(rule)],  # pyright: ignore[reportArgumentType]
        )

    return security_group_id
