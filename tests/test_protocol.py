"""Tests for console.protocol - frame decoding and encoding."""

import json

import pytest

from console.protocol import (
    AuthResult,
    DaemonMessage,
    LogOutput,
    Stats,
    StatusChanged,
    TokenExpired,
    TokenExpiring,
    Unknown,
    auth_frame,
    command_frame,
    decode_frame,
    power_frame,
    send_logs_frame,
)


def _frame(event, *args):
    return json.dumps({"event": event, "args": list(args)})


def test_decodes_known_events():
    assert decode_frame(_frame("auth success")) == AuthResult(success=True)
    assert decode_frame(_frame("jwt error", "bad sig")) == AuthResult(success=False, reason="bad sig")
    assert decode_frame(_frame("console output", "hello")) == LogOutput("hello")
    assert decode_frame(_frame("status", "running")) == StatusChanged("running")
    assert decode_frame(_frame("token expiring")) == TokenExpiring()
    assert decode_frame(_frame("token expired")) == TokenExpired()
    assert decode_frame(_frame("daemon error", "disk full")) == DaemonMessage("disk full", error=True)
    assert decode_frame(_frame("install output", "step 1")) == DaemonMessage("step 1")


def test_auth_success_without_args_key():
    assert decode_frame('{"event": "auth success"}') == AuthResult(success=True)


def test_stats_payload_is_nested_json():
    body = json.dumps({"cpu_absolute": 12.5, "memory_bytes": 1024})
    assert decode_frame(_frame("stats", body)) == Stats({"cpu_absolute": 12.5, "memory_bytes": 1024})


@pytest.mark.parametrize("raw", [
    "Done (9.234s)! For help, type \"help\"",
    "",
    "{not json",
    "[1, 2, 3]",
    '"just a string"',
    '{"event": 5, "args": []}',
    '{"event": "console output", "args": "oops"}',
    '{"event": "console output", "args": [42]}',
    '{"event": "stats", "args": ["not json"]}',
    '{"event": "something new", "args": ["x"]}',
])
def test_anything_unrecognized_becomes_unknown_with_raw_text(raw):
    assert decode_frame(raw) == Unknown(raw)


def test_binary_frames_are_decoded_as_text():
    assert decode_frame(_frame("console output", "hi").encode()) == LogOutput("hi")
    assert decode_frame(b"\xffraw") == Unknown("\ufffdraw")


def test_outbound_frames():
    assert json.loads(auth_frame("t1")) == {"event": "auth", "args": ["t1"]}
    assert json.loads(send_logs_frame()) == {"event": "send logs", "args": [None]}
    assert json.loads(command_frame("say hi")) == {"event": "send command", "args": ["say hi"]}
    assert json.loads(power_frame("restart")) == {"event": "set state", "args": ["restart"]}


def test_power_frame_rejects_unknown_action():
    with pytest.raises(ValueError):
        power_frame("explode")


def test_deeply_nested_frames_become_unknown():
    nested = "[" * 100000
    assert decode_frame(nested) == Unknown(nested)

    stats = _frame("stats", "[" * 100000)
    assert decode_frame(stats) == Unknown(stats)
