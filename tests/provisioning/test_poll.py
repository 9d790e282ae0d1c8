"""Tests for the status and SSH pollers, driven by a fake clock."""

import pytest

from hostprov.errors import PollTimeout
from hostprov.provisioning import poll


def _stub_ssh(monkeypatch, succeed_on=None):
    """Replace ssh-keygen and the ssh probe; probe succeeds on the n-th call (1-based)."""
    calls = {"forget": [], "probe": [], "timeout": []}

    async def fake_forget(host, dry_run=False):
        calls["forget"].append(host)

    async def fake_probe(address, timeout=poll.SSH_CHECK_TIMEOUT):
        calls["probe"].append(address)
        calls["timeout"].append(timeout)
        return succeed_on is not None and len(calls["probe"]) >= succeed_on

    monkeypatch.setattr(poll, "forget_host_key", fake_forget)
    monkeypatch.setattr(poll, "_probe_ssh", fake_probe)
    return calls


# ── wait_for_status ──────────────────────────────────────────────


@pytest.mark.parametrize("k", [0, 1, 2, 7])
async def test_wait_for_status_match_after_k_sleeps(fake_clock, fake_linode, k):
    client = fake_linode(running_on_poll=k + 1)

    instance = await poll.wait_for_status(client, "555", "running", timeout=100)

    assert instance.status == "running"
    assert len(fake_clock.sleeps) == k
    assert client.get_calls == k + 1


@pytest.mark.parametrize("budget", [1, 5, 100])
async def test_wait_for_status_times_out_within_one_interval(fake_clock, fake_linode, budget):
    client = fake_linode(running_on_poll=None)

    with pytest.raises(PollTimeout) as exc_info:
        await poll.wait_for_status(client, "555", "running", timeout=budget)

    assert budget <= fake_clock.now <= budget + 1
    assert "running" in str(exc_info.value)
    assert "555" in str(exc_info.value)
    assert f"{budget}s" in str(exc_info.value)


async def test_wait_for_status_timeout_reports_last_status(fake_clock, fake_linode):
    with pytest.raises(PollTimeout, match="last: 'provisioning'"):
        await poll.wait_for_status(fake_linode(running_on_poll=None), "555", "running", timeout=3)


async def test_wait_for_status_progress_dots(fake_clock, fake_linode, capsys):
    await poll.wait_for_status(fake_linode(running_on_poll=4), "555", "running", timeout=100)

    assert capsys.readouterr().err == "...\n"


async def test_wait_for_status_dry_run(fake_clock, fake_linode, caplog):
    client = fake_linode()

    with caplog.at_level("INFO"):
        instance = await poll.wait_for_status(client, "555", "running", timeout=100, dry_run=True)

    assert instance.status == "running"
    assert client.get_calls == 0
    assert "[dry-run]" in caplog.text


# ── wait_for_ssh ─────────────────────────────────────────────────


async def test_wait_for_ssh_first_probe(fake_clock, monkeypatch):
    calls = _stub_ssh(monkeypatch, succeed_on=1)

    await poll.wait_for_ssh("root", "203.0.113.10", timeout=100)

    assert calls["forget"] == ["203.0.113.10"]
    assert calls["probe"] == ["root@203.0.113.10"]
    assert fake_clock.sleeps == []


async def test_wait_for_ssh_retries_until_reachable(fake_clock, monkeypatch):
    calls = _stub_ssh(monkeypatch, succeed_on=3)

    await poll.wait_for_ssh("root", "203.0.113.10", timeout=100)

    assert len(calls["probe"]) == 3
    assert len(fake_clock.sleeps) == 2


async def test_wait_for_ssh_timeout(fake_clock, monkeypatch):
    calls = _stub_ssh(monkeypatch, succeed_on=None)

    with pytest.raises(PollTimeout, match="root@203.0.113.10"):
        await poll.wait_for_ssh("root", "203.0.113.10", timeout=5)

    assert 5 <= fake_clock.now <= 6
    assert len(calls["probe"]) == 5


async def test_wait_for_ssh_caps_each_attempt_at_remaining_budget(fake_clock, monkeypatch):
    calls = _stub_ssh(monkeypatch, succeed_on=None)

    with pytest.raises(PollTimeout):
        await poll.wait_for_ssh("root", "203.0.113.10", timeout=5)

    assert calls["timeout"] == [5, 4, 3, 2, 1]


async def test_wait_for_ssh_attempt_timeout_never_exceeds_default(fake_clock, monkeypatch):
    calls = _stub_ssh(monkeypatch, succeed_on=1)

    await poll.wait_for_ssh("root", "203.0.113.10", timeout=600)

    assert calls["timeout"] == [poll.SSH_CHECK_TIMEOUT]


async def test_wait_for_ssh_purges_key_before_probing(fake_clock, monkeypatch):
    order = []

    async def fake_forget(host, dry_run=False):
        order.append("forget")

    async def fake_probe(address, timeout=poll.SSH_CHECK_TIMEOUT):
        order.append("probe")
        return True

    monkeypatch.setattr(poll, "forget_host_key", fake_forget)
    monkeypatch.setattr(poll, "_probe_ssh", fake_probe)

    await poll.wait_for_ssh("root", "203.0.113.10", timeout=10)

    assert order == ["forget", "probe"]


async def test_probe_ssh_accepts_new_host_key(monkeypatch):
    seen = []
    timeouts = []

    async def fake_run(command, dry_run=False, timeout=600):
        seen.append(command)
        timeouts.append(timeout)
        return 255, "", "Connection refused"

    monkeypatch.setattr(poll, "run_shell_cmd", fake_run)

    assert await poll._probe_ssh("root@203.0.113.10", timeout=7) is False
    assert timeouts == [7]
    command = seen[0]
    assert command[0] == "ssh"
    assert "StrictHostKeyChecking=no" in command
    assert "BatchMode=yes" in command
    assert command[-2:] == ["root@203.0.113.10", "true"]
