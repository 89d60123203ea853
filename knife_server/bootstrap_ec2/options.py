import argparse
import sys
import tomllib
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from .config import BootstrapConfig

DEFAULT_CONFIG_FILE = "./knife.toml"


def make_parser():
    parser = argparse.ArgumentParser(
        prog="knife-server-bootstrap-ec2",
        description="Provision an EC2 instance and bootstrap a chef server on it",
    )
    # Defaults live in BootstrapConfig; None here means "not given on the command line"
    parser.add_argument("-c", "--config", type=str, default=None, help=f"TOML config file with a [knife] table (default {DEFAULT_CONFIG_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser.add_argument("-N", "--node-name", dest="node_name", help="The chef node name for the new server")
    parser.add_argument("-A", "--aws-access-key-id", dest="aws_access_key_id", metavar="KEY", help="Your AWS Access Key ID")
    parser.add_argument("-K", "--aws-secret-access-key", dest="aws_secret_access_key", metavar="SECRET", help="Your AWS API Secret Access Key")
    parser.add_argument("--region", help="Your AWS region (default us-east-1)")
    parser.add_argument("-S", "--ssh-key", dest="ssh_key_name", metavar="KEY", help="The AWS SSH key id")
    parser.add_argument("-f", "--flavor", help="The flavor of server (m1.small, m1.medium, etc)")
    parser.add_argument("-I", "--image", help="The AMI for the server")
    parser.add_argument("-Z", "--availability-zone", dest="availability_zone", metavar="ZONE", help="The Availability Zone (default us-east-1b)")
    parser.add_argument("-G", "--groups", dest="security_groups", metavar="X,Y,Z", help="The security groups for this server (default infrastructure)")
    parser.add_argument("-T", "--tags", metavar="Tag=Value[,Tag=Value...]", help="The tags for this server")
    parser.add_argument("--ebs-size", dest="ebs_size", type=int, metavar="SIZE", help="The size of the EBS volume in GB, for EBS-backed instances")
    parser.add_argument("--ebs-no-delete-on-term", dest="ebs_no_delete_on_term", action="store_true", default=None,
                        help="Do not delete EBS volume on instance termination")

    parser.add_argument("-x", "--ssh-user", dest="ssh_user", help="The ssh username (default root)")
    parser.add_argument("-p", "--ssh-port", dest="ssh_port", type=int, help="The ssh port (default 22)")
    parser.add_argument("-i", "--identity-file", dest="identity_file", help="The SSH identity file used for authentication")
    parser.add_argument("-P", "--platform", help="The platform type that will be bootstrapped (default debian)")
    parser.add_argument("--distro", help="Bootstrap a distro using a template (default chef-server-<platform>)")
    parser.add_argument("--webui-password", dest="webui_password", metavar="SECRET", help="Initial password for WebUI admin account (default random)")
    parser.add_argument("--amqp-password", dest="amqp_password", metavar="SECRET", help="Initial password for AMQP (default random)")

    parser.add_argument("-u", "--knife-user", dest="knife_user", help="Admin client created on the chef server (default local login)")
    parser.add_argument("--validation-key", dest="validation_key", help="Local path for the validation key (default ~/.chef/validation.pem)")
    parser.add_argument("--client-key", dest="client_key", help="Local path for the client key (default ~/.chef/<knife-user>.pem)")
    return parser


def load_config_file(config_file: Optional[str]) -> dict:
    path = Path(config_file or DEFAULT_CONFIG_FILE)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        if config_file is None:
            return {}
        logger.error(f"{config_file} not found, aborting")
        sys.exit(1)

    logger.debug(f"Loaded settings from {path}")
    return dict(data.get("knife", {}))


def build_config(args: argparse.Namespace) -> BootstrapConfig:
    data = load_config_file(args.config)
    data.update({
        key: value for key, value in vars(args).items()
        if key in BootstrapConfig.model_fields and value is not None
    })
    try:
        return BootstrapConfig(**data)
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            logger.error(f"Invalid {field}: {error['msg']}")
        sys.exit(1)
