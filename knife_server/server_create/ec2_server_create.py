import shlex
import socket
from pathlib import Path
from typing import Callable, Dict

from botocore.exceptions import ClientError
from loguru import logger

from ..aws_provider.client_factory import AwsClient
from ..remote.ssh import SSH
from ..utils.wait_until import wait_until
from .types import CreatedServer, ServerCreateRequest

TEMPLATE_DIR = Path(__file__).parent / "templates"


class UnknownDistroError(Exception):
    pass


def bootstrap_template_path(distro: str) -> Path:
    path = TEMPLATE_DIR / f"{distro}.sh"
    if not path.is_file():
        available = sorted(p.stem for p in TEMPLATE_DIR.glob("*.sh"))
        raise UnknownDistroError(f"No bootstrap template for distro {distro!r}, available: {available}")
    return path


def render_bootstrap_script(request: ServerCreateRequest) -> str:
    """Bootstrap template prefixed with the variables it reads.

    Secrets travel inside the script body on stdin, never on the command line.
    """
    template = bootstrap_template_path(request.distro).read_text()
    env: Dict[str, str] = {
        "NODE_NAME": request.node_name,
        "WEBUI_PASSWORD": request.secrets.webui_password,
        "AMQP_PASSWORD": request.secrets.amqp_password,
    }
    exports = "".join(f"export {k}={shlex.quote(v)}\n" for k, v in env.items())
    return exports + template


def check_port(host: str, port: int, timeout: int = 5) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(timeout)

    try:
        return sock.connect_ex((host, port)) == 0
    except (socket.timeout, socket.error):
        return False
    finally:
        sock.close()


class Ec2ServerCreate:
    """Launch one EC2 instance and install a chef server on it."""

    def __init__(
        self,
        aws_client: AwsClient,
        ssh_factory: Callable[..., SSH] = SSH,
        port_check: Callable[[str, int], bool] = check_port,
        running_timeout: float = 600,
        ssh_timeout: float = 600,
        retry_interval: float = 5,
    ):
        self.aws_client = aws_client
        self.ssh_factory = ssh_factory
        self.port_check = port_check
        self.running_timeout = running_timeout
        self.ssh_timeout = ssh_timeout
        self.retry_interval = retry_interval

    def run(self, request: ServerCreateRequest) -> CreatedServer:
        script = render_bootstrap_script(request)

        instance_id = self.launch(request)
        server = self.wait_for_running(instance_id)
        logger.info(f"Instance {instance_id} running at {server.address}, waiting for sshd")

        wait_until(lambda: self.port_check(server.address, request.ssh_port),
                   timeout=self.ssh_timeout, retry_interval=self.retry_interval)

        logger.info(f"Bootstrapping {request.node_name} with {request.distro}")
        ssh = self.ssh_factory(
            host=server.address,
            user=request.ssh_user,
            port=request.ssh_port,
            keys=[request.identity_file],
        )
        ssh.exec("bash -s", input=script)
        logger.success(f"Chef server {request.node_name} bootstrapped on {server.address}")
        return server

    def launch(self, request: ServerCreateRequest) -> str:
        root_device_name = None
        if request.ebs_size is not None:
            root_device_name = self.aws_client.get_root_device_name(request.image)

        return self.aws_client.run_instance(
            image_id=request.image,
            instance_type=request.flavor,
            security_groups=list(request.security_groups),
            tags=request.hashed_tags(),
            key_name=request.ssh_key_name,
            availability_zone=request.availability_zone,
            root_device_name=root_device_name,
            ebs_size=request.ebs_size,
            ebs_delete_on_termination=not request.ebs_no_delete_on_term,
        )

    def wait_for_running(self, instance_id: str) -> CreatedServer:
        found = {}

        def _running():
            try:
                instance = self.aws_client.describe_instance(instance_id)
            except ClientError as exc:
                # a fresh instance id may not be visible to describe calls yet
                if exc.response['Error']['Code'] != "InvalidInstanceID.NotFound":
                    raise
                logger.debug(f"Instance {instance_id} not visible yet")
                return False
            if instance is None or instance.state != "running" or not instance.address:
                logger.debug(f"Instance {instance_id} not ready: {instance.state if instance else 'unknown'}")
                return False
            found["instance"] = instance
            return True

        wait_until(_running, timeout=self.running_timeout, retry_interval=self.retry_interval)
        instance = found["instance"]
        return CreatedServer(instance_id=instance_id, dns_name=instance.dns_name, public_ip=instance.public_ip)
