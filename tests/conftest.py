"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

import hostprov.redact as redact_module
from hostprov.provisioning.types import Instance

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the hostprov CLI as a subprocess."""

    def _run(*args):
        env = {k: v for k, v in os.environ.items() if k not in ("LINODE_TOKEN", "LINODE_CLI_TOKEN")}
        result = subprocess.run(
            [sys.executable, "-m", "hostprov.hostprov", *args],
            capture_output=True,
            stdin=subprocess.DEVNULL,
            text=True,
            cwd=project_root,
            env=env,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(autouse=True)
def _reset_redaction():
    """Forget secrets registered by earlier tests."""
    redact_module._runtime_secrets.clear()
    redact_module._patterns = None
    yield
    redact_module._runtime_secrets.clear()
    redact_module._patterns = None


# ── Settings fixtures ───────────────────────────────────────────────


@pytest.fixture
def scripts_dir(tmp_path):
    """Directory with the setup scripts that get uploaded."""
    path = tmp_path / "scripts"
    path.mkdir()
    for name in ("setup.sh", "customer_setup.sh", "setupall.sh", "README.md"):
        (path / name).write_text("#!/bin/sh\n")
    return path


@pytest.fixture
def public_key(tmp_path):
    path = tmp_path / "id_rsa.pub"
    path.write_text("ssh-rsa AAAAB3NzaC1yc2EAAAA test@workstation\n")
    return path


@pytest.fixture
def raw_settings(tmp_path, scripts_dir, public_key):
    """A complete settings mapping using the local entropy source."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return {
        "admin_username": "hostadmin",
        "image": "linode/ubuntu18.04",
        "scripts_dir": str(scripts_dir),
        "wait_time": 100,
        "notify_email": "ops@example.com",
        "setup_config_template": "",
        "setup_entrypoint": "setupall.sh",
        "ssh_user": "root",
        "ssh_public_key": str(public_key),
        "password_log_dir": str(log_dir),
        "entropy_source": "local",
        "api_url": "https://api.linode.test/v4",
    }


@pytest.fixture
def write_config(tmp_path, raw_settings):
    """Return a factory that writes a settings YAML file."""

    def _make(**overrides):
        config_path = tmp_path / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump({**raw_settings, **overrides}, f)
        return str(config_path)

    return _make


# ── Fakes ───────────────────────────────────────────────────────────


class FakeClock:
    """Monotonic clock that only advances when sleep() is awaited."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock(monkeypatch):
    """Install a FakeClock into the poller module."""
    from hostprov.provisioning import poll

    clock = FakeClock()
    monkeypatch.setattr(poll, "_clock", clock)
    monkeypatch.setattr(poll, "_sleep", clock.sleep)
    return clock


class FakeLinode:
    """In-memory stand-in for LinodeClient.

    Reports "running" from the *running_on_poll*-th status read onward
    (1-based); never if None.
    """

    def __init__(self, instance_id="555", running_on_poll=1, host="203.0.113.10"):
        self.instance_id = instance_id
        self.running_on_poll = running_on_poll
        self.host = host
        self.create_calls = []
        self.get_calls = 0

    async def create_instance(self, **kwargs):
        self.create_calls.append(kwargs)
        return Instance(id=self.instance_id, label=kwargs["label"], status="provisioning")

    async def get_instance(self, instance_id):
        self.get_calls += 1
        if self.running_on_poll is not None and self.get_calls >= self.running_on_poll:
            return Instance(id=str(instance_id), status="running", ipv4=[self.host])
        return Instance(id=str(instance_id), status="provisioning")

    async def list_regions(self):
        return ["ap-south", "eu-west", "us-east"]

    async def list_types(self):
        return ["g6-nanode-1", "g6-standard-1"]


@pytest.fixture
def fake_linode():
    return FakeLinode
