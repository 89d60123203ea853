from dataclasses import dataclass, field
from typing import Dict, List, Optional


ROLE_TAG_KEY = "Role"
CHEF_SERVER_ROLE = "chef_server"
NAME_TAG_KEY = "Name"


@dataclass
class InstanceInfoWithTag:
    instance_id: str
    state: str
    dns_name: str
    public_ip: Optional[str]
    tags: Dict[str, str]

    @property
    def address(self) -> Optional[str]:
        return self.dns_name or self.public_ip


@dataclass
class SecurityGroupInfo:
    security_group_id: str
    security_group_name: str
    ip_permissions: List[dict] = field(default_factory=list)


@dataclass(frozen=True)
class IngressRule:
    protocol: str
    from_port: int
    to_port: int
    # exactly one of these is set
    cidr_ip: Optional[str] = None
    source_group_id: Optional[str] = None

    def describe(self) -> str:
        return f"{self.protocol}({self.from_port} -> {self.to_port})"
