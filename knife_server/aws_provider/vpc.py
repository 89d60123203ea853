# pyright: reportTypedDictNotRequiredAccess=false

from typing import Optional

from mypy_boto3_ec2.client import EC2Client


def get_default_vpc_id(client: EC2Client) -> Optional[str]:
    response = client.describe_vpcs(Filters=[{'Name': 'isDefault', 'Values': ['true']}])
    vpcs = response['Vpcs']
    if len(vpcs) == 0:
        return None

    vpc_id = vpcs[0]['VpcId']
    assert type(vpc_id) is str
    return vpc_id
