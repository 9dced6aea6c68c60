import os
from pathlib import Path
from tempfile import mkstemp

from chatsync.consts import DATA_DIR_NAME
from chatsync.exceptions import ConfigurationError


def resolve_data_dir() -> Path:
    """
    Returns the directory holding the local stores and sync settings.

    `CHATSYNC_HOME` overrides the default `~/.chatsync` and must be absolute.
    """
    if env_path := os.environ.get("CHATSYNC_HOME"):
        path = Path(env_path)
        if not path.is_absolute():
            raise ConfigurationError("CHATSYNC_HOME must be an absolute path")
        return path
    return Path.home() / DATA_DIR_NAME


def read_bytes_if_exists(path: Path) -> bytes | None:
    """
    Reads a file's raw bytes, returning None only when it does not exist. Other OSErrors propagate.
    """
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def atomic_write_text(path: Path, text: str | bytes, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = mkstemp(suffix=path.suffix, prefix=path.name + ".tmp", dir=path.parent)
    tmp_path = Path(tmp)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            match text:
                case str():
                    _ = f.write(text)
                case bytes():
                    _ = f.write(text.decode(encoding))

        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
