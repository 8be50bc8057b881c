from __future__ import annotations

import json
from pathlib import Path

import pytest

from lsrd.cli.main import main
from lsrd.errors import TransportError
from lsrd.runtime.identity import local_identity
from lsrd.runtime.transport import UdpTransport


def test_udp_transport_loopback_roundtrip() -> None:
    a = UdpTransport(bind_address="127.0.0.1", bind_port=0)
    b = UdpTransport(bind_address="127.0.0.1", bind_port=0)
    try:
        host, port = b.local_address
        a.send(b"hello", host, port)
        incoming = b.recv(timeout_s=2.0)
        assert incoming is not None
        assert incoming[0] == b"hello"
        assert incoming[1] == a.local_address
        assert b.recv(timeout_s=0.05) is None
    finally:
        a.close()
        b.close()


def test_udp_transport_bad_bind_address_raises() -> None:
    with pytest.raises(TransportError):
        UdpTransport(bind_address="192.0.2.1", bind_port=0)


def test_cli_validate_reports_ok_and_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    good = tmp_path / "good.yaml"
    good.write_text("router_id: R1\ninterface:\n  capacity: 100\n", encoding="utf-8")
    bad = tmp_path / "bad.yaml"
    bad.write_text("mode: gateway\n", encoding="utf-8")

    assert main(["validate", "--config", str(good)]) == 0
    assert json.loads(capsys.readouterr().out) == {"ok": True}

    assert main(["validate", "--config", str(bad)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert any("mode" in err for err in report["errors"])


def test_cli_run_with_unreadable_config_exits_with_code_2(tmp_path: Path) -> None:
    assert main(["run", "--config", str(tmp_path / "missing.yaml")]) == 2


def test_local_identity_prefers_configured_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("lsrd.runtime.identity.socket.gethostname", lambda: "edge-7.lab.example")

    assert local_identity("R9") == "R9"
    assert local_identity(None) == "edge-7"


def test_cli_run_with_unwritable_event_log_exits_with_code_2(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    cfg_path = tmp_path / "router.yaml"
    cfg_path.write_text(f"router_id: R1\nevent_log: {blocker / 'events.jsonl'}\n", encoding="utf-8")

    assert main(["run", "--config", str(cfg_path)]) == 2
