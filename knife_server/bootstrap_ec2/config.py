import getpass
import secrets
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _random_password() -> str:
    return secrets.token_hex(8)


class BootstrapConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_name: Optional[str] = None

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    region: str = "us-east-1"
    ssh_key_name: Optional[str] = None
    flavor: str = "m1.small"
    image: Optional[str] = None
    availability_zone: str = "us-east-1b"
    security_groups: List[str] = ["infrastructure"]
    tags: List[str] = []
    ebs_size: Optional[int] = None
    ebs_no_delete_on_term: bool = False

    ssh_user: str = "root"
    ssh_port: int = 22
    identity_file: Optional[str] = None

    platform: str = "debian"
    distro: Optional[str] = None
    webui_password: str = Field(default_factory=_random_password)
    amqp_password: str = Field(default_factory=_random_password)

    # local workstation side
    knife_user: str = Field(default_factory=getpass.getuser)
    validation_key: str = "~/.chef/validation.pem"
    client_key: Optional[str] = None

    @field_validator("security_groups", "tags", mode="before")
    @classmethod
    def split_comma_list(cls, value):
        if isinstance(value, str):
            return [item for item in value.split(",") if item]
        return value

    @field_validator("security_groups")
    @classmethod
    def require_security_group(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one security group is required")
        return value

    @property
    def client_key_path(self) -> str:
        return self.client_key or f"~/.chef/{self.knife_user}.pem"
