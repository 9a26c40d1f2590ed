import io
import tempfile
import zipfile
from pathlib import Path

import pytest

from b2g_probe.application.domain import DeviceTransport
from b2g_probe.application.exceptions import TransportError


class FakeTransport(DeviceTransport):
    """
    Serves pulls from an in-memory map of remote path -> bytes.

    A value of None simulates adb reporting success without writing the
    file. Unknown paths fail like a missing remote file would.
    """

    def __init__(self, files=None, shell_outputs=None):
        self.files = dict(files or {})
        self.shell_outputs = dict(shell_outputs or {})
        self.calls = []

    @property
    def pulls(self):
        return [call[1] for call in self.calls if call[0] == "pull"]

    async def adb(self, *args):
        self.calls.append(("adb",) + args)
        return ""

    async def shell(self, command):
        self.calls.append(("shell", command))
        return self.shell_outputs.get(command, "")

    async def pull(self, remote, local):
        self.calls.append(("pull", remote, Path(local)))
        if remote not in self.files:
            raise TransportError(f"remote object '{remote}' does not exist")
        content = self.files[remote]
        target = Path(local)
        if target.is_dir():
            target = target / remote.rsplit("/", 1)[-1]
        if content is not None:
            target.write_bytes(content)
        return ""

    async def push(self, local, remote):
        self.calls.append(("push", Path(local), remote))
        return ""


def build_zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def temp_root(tmp_path, monkeypatch):
    """Redirects temporary directories so tests can see what is left."""
    root = tmp_path / "temp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
