"""Tests for the fast_hook UDS client and its in-process fallback."""
import asyncio
import io
import json
from unittest.mock import patch

import pytest

import fast_hook
from pinecone_memory.server.hook_server import start_hook_server, stop_hook_server

TS_FACT = "I always prefer using TypeScript for new projects"


# ============================================================================
# Payload parsing
# ============================================================================

@pytest.mark.parametrize(
    "raw,expected",
    [
        ('{"prompt": "hello there"}', {"prompt": "hello there"}),
        ("", {}),
        ("   \n", {}),
        ("{broken", {}),
        ("[1, 2]", {}),
    ],
)
def test_parse_payload(raw, expected):
    assert fast_hook._parse_payload(io.StringIO(raw)) == expected


# ============================================================================
# delegate
# ============================================================================

def test_delegate_missing_socket(tmp_path):
    with pytest.raises(OSError):
        fast_hook.delegate("before_agent_start", {}, timeout=1.0, sock_path=str(tmp_path / "none.sock"))


@pytest.mark.asyncio
async def test_delegate_round_trip(bridge, fake_store):
    srv = await start_hook_server(bridge)
    assert srv is not None
    sock = str(bridge.settings.hook_socket)
    try:
        result = await asyncio.to_thread(
            fast_hook.delegate,
            "agent_end",
            {"messages": [{"role": "user", "content": TS_FACT}]},
            5.0,
            sock,
        )
        batch = await asyncio.to_thread(
            fast_hook.delegate, ["before_agent_start", "agent_end"], {"prompt": "hi", "messages": []}, 5.0, sock
        )
    finally:
        await stop_hook_server(srv, bridge.settings.hook_socket)
    assert result["captured"]["added"] == 1
    assert len(fake_store.records) == 1
    assert batch == {"results": [{}, {"captured": {"added": 0, "updated": 0, "deleted": 0, "none": 0, "failed": 0}}]}
    assert not bridge.settings.hook_socket.exists()


# ============================================================================
# Fallback
# ============================================================================

def test_fallback_runs_in_process(bridge, fake_store):
    with patch("pinecone_memory.bridge.create_bridge", return_value=bridge):
        result = fast_hook._fallback("agent_end", {"messages": [{"role": "user", "content": TS_FACT}]})
    assert result["captured"]["added"] == 1
    assert len(fake_store.records) == 1


def test_fallback_batch(bridge):
    with patch("pinecone_memory.bridge.create_bridge", return_value=bridge):
        result = fast_hook._fallback(["before_agent_start", "bogus"], {"prompt": "hi"})
    assert result == {"results": [{}, {"error": "Unknown hook: bogus"}]}


# ============================================================================
# main
# ============================================================================

def test_main_uses_fallback_when_daemon_down(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(fast_hook, "HOME_DIR", str(tmp_path))
    monkeypatch.setattr(fast_hook, "SOCK_PATH", str(tmp_path / "missing.sock"))
    monkeypatch.setattr("sys.argv", ["fast_hook.py", "before_agent_start"])
    monkeypatch.setattr("sys.stdin", io.StringIO('{"prompt": "Which editor?"}'))
    with patch.object(fast_hook, "_fallback", return_value={"prepend_context": "<relevant-memories>\n</relevant-memories>"}) as fb:
        fast_hook.main()
    fb.assert_called_once_with("before_agent_start", {"prompt": "Which editor?"})
    assert json.loads(capsys.readouterr().out)["prepend_context"].startswith("<relevant-memories>")
    assert "fast_hook/before_agent_start: OK" in (tmp_path / "hooks.log").read_text()


def test_main_fallback_error_prints_empty(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(fast_hook, "HOME_DIR", str(tmp_path))
    monkeypatch.setattr(fast_hook, "SOCK_PATH", str(tmp_path / "missing.sock"))
    monkeypatch.setattr("sys.argv", ["fast_hook.py", "agent_end"])
    monkeypatch.setattr("sys.stdin", io.StringIO("{}"))
    with patch.object(fast_hook, "_fallback", side_effect=RuntimeError("PINECONE_API_KEY is required")):
        fast_hook.main()
    captured = capsys.readouterr()
    assert json.loads(captured.out) == {}
    assert "hook fallback error (agent_end)" in captured.err


def test_main_requires_hook_name(monkeypatch):
    monkeypatch.setattr("sys.argv", ["fast_hook.py"])
    with pytest.raises(SystemExit):
        fast_hook.main()


def test_log_timing_uses_utc(tmp_path, monkeypatch):
    monkeypatch.setattr(fast_hook, "HOME_DIR", str(tmp_path))
    fast_hook._log_timing("agent_end", 41.6, "daemon")
    line = (tmp_path / "hooks.log").read_text()
    stamp = line[1:line.index("]")]
    assert stamp.endswith("+00:00")
    assert "fast_hook/agent_end: OK (42ms, daemon)" in line
