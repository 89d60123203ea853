import shlex
import shutil
import time
from pathlib import Path
from typing import Optional

from loguru import logger

from .remote.ssh import SSH

CHEF10_VALIDATION_KEY = "/etc/chef/validation.pem"
CHEF11_VALIDATION_KEY = "/etc/chef-server/chef-validator.pem"


def backup_file_path(file_path: Path, suffix) -> Optional[Path]:
    if not file_path.exists():
        return None
    backup = file_path.with_name(f"{file_path.name}.{suffix}")
    shutil.copy2(file_path, backup)
    logger.info(f"Backed up {file_path} to {backup}")
    return backup


class Credentials:
    """Moves chef server keys between the server and the local workstation."""

    def __init__(self, ssh: SSH, validation_key_path: str, client_key_path: str):
        self.ssh = ssh
        self.validation_key_path = Path(validation_key_path).expanduser()
        self.client_key_path = Path(client_key_path).expanduser()

    def install_validation_key(self, suffix=None):
        suffix = suffix if suffix is not None else int(time.time())
        backup_file_path(self.validation_key_path, suffix)

        cmd = f"[ -f {CHEF11_VALIDATION_KEY} ] && cat {CHEF11_VALIDATION_KEY} || cat {CHEF10_VALIDATION_KEY}"
        key = self.ssh.exec(cmd)
        _write_key(self.validation_key_path, key)
        logger.success(f"Validation key installed to {self.validation_key_path}")

    def create_root_client(self) -> str:
        return self.ssh.exec(
            "knife configure --initial --server-url http://127.0.0.1:4000 "
            "--user root --repository '' --defaults --yes"
        )

    def install_client_key(self, user: str, suffix=None):
        suffix = suffix if suffix is not None else int(time.time())
        remote_key = shlex.quote(f"/tmp/chef-client-{user}.pem")

        self.ssh.exec(f"knife client create {shlex.quote(user)} --admin --file {remote_key} --disable-editing")

        backup_file_path(self.client_key_path, suffix)
        _write_key(self.client_key_path, self.ssh.exec(f"cat {remote_key}"))
        self.ssh.exec(f"rm -f {remote_key}")
        logger.success(f"Client key for {user} installed to {self.client_key_path}")


def _write_key(path: Path, content: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    # restrict before the key lands, an existing file may be world readable
    path.touch(mode=0o600, exist_ok=True)
    path.chmod(0o600)
    path.write_text(content)
