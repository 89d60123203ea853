from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class BootstrapSecrets:
    webui_password: str
    amqp_password: str


@dataclass(frozen=True)
class ServerCreateRequest:
    node_name: str
    image: str
    flavor: str
    distro: str
    secrets: BootstrapSecrets
    security_groups: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    availability_zone: Optional[str] = None
    ssh_key_name: Optional[str] = None
    ebs_size: Optional[int] = None
    ebs_no_delete_on_term: bool = False
    ssh_user: str = "root"
    ssh_port: int = 22
    identity_file: Optional[str] = None

    def hashed_tags(self) -> Dict[str, str]:
        tags = dict(tag.split("=", 1) for tag in self.tags)
        tags.setdefault("Name", self.node_name)
        return tags


@dataclass
class CreatedServer:
    instance_id: str
    dns_name: str
    public_ip: Optional[str]

    @property
    def address(self) -> str:
        return self.dns_name or self.public_ip or ""
