from dataclasses import dataclass, field
from typing import List, Optional

import boto3

from .instance import get_instances_with_tag, describe_instance, run_instance
from .image import get_root_device_name
from .security_group import configure_chef_server_group
from .types import InstanceInfoWithTag

from mypy_boto3_ec2.client import EC2Client


@dataclass
class AwsClient:
    region_id: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    _client: Optional[EC2Client] = field(default=None, init=False, repr=False)

    @classmethod
    def new(cls, region_id: str, access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None) -> 'AwsClient':
        return AwsClient(region_id=region_id, access_key_id=access_key_id, secret_access_key=secret_access_key)

    def build(self) -> EC2Client:
        # None credentials fall through to boto3's default chain (env, ~/.aws, instance role)
        if self._client is None:
            self._client = boto3.client(
                'ec2',
                region_name=self.region_id,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    def get_instances_with_tag(self) -> List[InstanceInfoWithTag]:
        return get_instances_with_tag(self.build())

    def describe_instance(self, instance_id: str) -> Optional[InstanceInfoWithTag]:
        return describe_instance(self.build(), instance_id)

    def get_root_device_name(self, image_id: str) -> str:
        return get_root_device_name(self.build(), image_id)

    def run_instance(self, **kwargs) -> str:
        return run_instance(self.build(), **kwargs)

    def configure_chef_server_group(self, group_name: str, description: str) -> str:
        return configure_chef_server_group(self.build(), group_name, description)
