"""Shared data types for provisioning runs."""

from dataclasses import dataclass, field

from hostprov.provisioning.credentials import PasswordLog


@dataclass
class Instance:
    """Structured view of a Linode instance as returned by the API."""

    id: str
    label: str = ""
    region: str = ""
    type: str = ""
    image: str = ""
    status: str = ""
    ipv4: list[str] = field(default_factory=list)

    @property
    def address(self) -> str:
        """First public IPv4 address, or "" before one is assigned."""
        return self.ipv4[0] if self.ipv4 else ""

    @classmethod
    def from_api(cls, data: dict) -> "Instance":
        return cls(
            id=str(data["id"]),
            label=data.get("label") or "",
            region=data.get("region") or "",
            type=data.get("type") or "",
            image=data.get("image") or "",
            status=data.get("status") or "",
            ipv4=list(data.get("ipv4") or []),
        )


@dataclass
class HostingRequest:
    """Operator-supplied values for one hosting setup."""

    label: str
    region: str
    type: str
    server_name: str
    username: str
    domain_name: str


@dataclass
class RunContext:
    """Per-run state threaded explicitly through each provisioning step."""

    password_log: PasswordLog
    instance_id: str = ""
    host: str = ""


@dataclass
class RunResult:
    """Outcome of a completed handoff."""

    instance_id: str
    host: str
    password_log_path: str
