import sys
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from ..aws_provider.client_factory import AwsClient
from ..aws_provider.types import CHEF_SERVER_ROLE, NAME_TAG_KEY, ROLE_TAG_KEY, InstanceInfoWithTag
from ..credentials import Credentials
from ..remote.ssh import SSH
from ..server_create.ec2_server_create import Ec2ServerCreate
from ..server_create.types import BootstrapSecrets, CreatedServer, ServerCreateRequest
from .config import BootstrapConfig


def bootstrap_tags(tags: Iterable[str]) -> List[str]:
    """Key=Value tags for the new instance, always carrying Role=chef_server.

    A repeated key keeps its first position and its last value.
    """
    hashed: Dict[str, str] = {}
    for tag in tags:
        if not tag:
            continue
        key, _, value = tag.partition("=")
        hashed[key] = value
    hashed[ROLE_TAG_KEY] = CHEF_SERVER_ROLE
    return [f"{k}={v}" for k, v in hashed.items()]


def select_chef_server(instances: Iterable[InstanceInfoWithTag], node_name: Optional[str]) -> Optional[InstanceInfoWithTag]:
    # best effort: the last match in listing order, which is not a recency guarantee
    selected = None
    for instance in instances:
        if (instance.state == "running"
                and instance.tags.get(NAME_TAG_KEY) == node_name
                and instance.tags.get(ROLE_TAG_KEY) == CHEF_SERVER_ROLE):
            selected = instance
    return selected


class BootstrapCommand:
    """knife server bootstrap ec2"""

    def __init__(
        self,
        config: BootstrapConfig,
        aws_client: Optional[AwsClient] = None,
        server_create: Optional[Callable[[ServerCreateRequest], CreatedServer]] = None,
        credentials: Optional[Credentials] = None,
    ):
        self.config = config
        self._aws_client = aws_client
        self._server_create = server_create
        self._credentials = credentials

    def run(self):
        self.validate()
        self.config_security_group()
        self.ec2_bootstrap()
        self.fetch_validation_key()
        self.create_root_client()
        self.install_client_key()

    def validate(self):
        if self.config.node_name is None:
            logger.error("You did not provide a valid --node-name value.")
            sys.exit(1)

    @property
    def ec2_connection(self) -> AwsClient:
        if self._aws_client is None:
            self._aws_client = AwsClient.new(
                self.config.region,
                access_key_id=self.config.aws_access_key_id,
                secret_access_key=self.config.aws_secret_access_key,
            )
        return self._aws_client

    def config_security_group(self, name: Optional[str] = None) -> str:
        name = name if name is not None else self.config.security_groups[0]
        return self.ec2_connection.configure_chef_server_group(name, f"{name} group")

    def bootstrap_tags(self) -> List[str]:
        return bootstrap_tags(self.config.tags)

    def bootstrap_distro(self) -> str:
        return self.config.distro or f"chef-server-{self.config.platform}"

    def bootstrap_request(self) -> ServerCreateRequest:
        config = self.config
        assert config.node_name is not None
        return ServerCreateRequest(
            node_name=config.node_name,
            image=config.image or "",
            flavor=config.flavor,
            distro=self.bootstrap_distro(),
            secrets=BootstrapSecrets(
                webui_password=config.webui_password,
                amqp_password=config.amqp_password,
            ),
            security_groups=list(config.security_groups),
            tags=self.bootstrap_tags(),
            availability_zone=config.availability_zone,
            ssh_key_name=config.ssh_key_name,
            ebs_size=config.ebs_size,
            ebs_no_delete_on_term=config.ebs_no_delete_on_term,
            ssh_user=config.ssh_user,
            ssh_port=config.ssh_port,
            identity_file=config.identity_file,
        )

    def ec2_bootstrap(self) -> CreatedServer:
        if self._server_create is None:
            self._server_create = Ec2ServerCreate(self.ec2_connection).run
        return self._server_create(self.bootstrap_request())

    def server_address(self) -> Optional[str]:
        instance = select_chef_server(self.ec2_connection.get_instances_with_tag(), self.config.node_name)
        return instance.address if instance else None

    def ssh_connection(self) -> SSH:
        return SSH(
            host=self.server_address(),
            user=self.config.ssh_user,
            port=self.config.ssh_port,
            keys=[self.config.identity_file],
        )

    @property
    def credentials_client(self) -> Credentials:
        if self._credentials is None:
            self._credentials = Credentials(
                self.ssh_connection(),
                self.config.validation_key,
                self.config.client_key_path,
            )
        return self._credentials

    def fetch_validation_key(self):
        self.credentials_client.install_validation_key()

    def create_root_client(self):
        logger.info(self.credentials_client.create_root_client())

    def install_client_key(self):
        self.credentials_client.install_client_key(self.config.knife_user)
