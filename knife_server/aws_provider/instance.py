# pyright: reportTypedDictNotRequiredAccess=false

from typing import Dict, List, Optional

from loguru import logger

from .types import InstanceInfoWithTag

from mypy_boto3_ec2.client import EC2Client


def as_instance_info_with_tag(instance) -> InstanceInfoWithTag:
    if instance.get('Tags'):
        tags = {tag['Key']: tag['Value'] for tag in instance['Tags']}
    else:
        tags = dict()

    return InstanceInfoWithTag(
        instance_id=instance['InstanceId'],
        state=instance['State']['Name'],
        dns_name=instance.get('PublicDnsName', ''),
        public_ip=instance.get('PublicIpAddress'),
        tags=tags,
    )


def get_instances_with_tag(client: EC2Client) -> List[InstanceInfoWithTag]:
    """All instances in the region, in the order the API returns them."""
    instances = []
    next_token = None

    while True:
        params = {}
        if next_token:
            params['NextToken'] = next_token

        response = client.describe_instances(**params)

        for reservation in response['Reservations']:
            for instance in reservation['Instances']:
                # terminated instances linger in the listing for a while
                if instance['State']['Name'] == 'terminated':
                    continue

                instances.append(as_instance_info_with_tag(instance))

        next_token = response.get('NextToken')
        if not next_token:
            break

    return instances


def describe_instance(client: EC2Client, instance_id: str) -> Optional[InstanceInfoWithTag]:
    response = client.describe_instances(InstanceIds=[instance_id])
    for reservation in response['Reservations']:
        for instance in reservation['Instances']:
            return as_instance_info_with_tag(instance)
    return None


def run_instance(
    client: EC2Client,
    *,
    image_id: str,
    instance_type: str,
    security_groups: List[str],
    tags: Dict[str, str],
    key_name: Optional[str] = None,
    availability_zone: Optional[str] = None,
    root_device_name: Optional[str] = None,
    ebs_size: Optional[int] = None,
    ebs_delete_on_termination: bool = True,
) -> str:
    kwargs = dict(
        ImageId=image_id,
        MinCount=1,
        MaxCount=1,
        InstanceType=instance_type,
        SecurityGroups=security_groups,
        TagSpecifications=[{
            'ResourceType': 'instance',
            'Tags': [{'Key': k, 'Value': v} for k, v in tags.items()],
        }],
    )
    if key_name:
        kwargs['KeyName'] = key_name
    if availability_zone:
        kwargs['Placement'] = {'AvailabilityZone': availability_zone}
    if ebs_size is not None and root_device_name:
        kwargs['BlockDeviceMappings'] = [{
            'DeviceName': root_device_name,
            'Ebs': {
                'VolumeSize': ebs_size,
                'DeleteOnTermination': ebs_delete_on_termination,
            },
        }]

    response = client.run_instances(**kwargs)  # pyright: ignore[reportArgumentType]
    instance_id = response['Instances'][0]['InstanceId']
    assert type(instance_id) is str
    logger.success(f"Create instance {instance_id}: image={image_id}, instance_type={instance_type}, zone={availability_zone}")
    return instance_id
