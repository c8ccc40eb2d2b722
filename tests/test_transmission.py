import json
import time

import pytest

from xdtorrent.rpc.transmission import Request, Response, XsrfToken


def test_fresh_token_is_valid():
    tok = XsrfToken()
    assert len(tok.token()) == 10
    assert not tok.expired()
    assert tok.check(tok.token())


def test_check_rejects_other_value():
    tok = XsrfToken(data="token", expires=time.time() + 60)
    assert tok.check("token")
    assert not tok.check("secret")


def test_expired_token_fails_check():
    tok = XsrfToken(data="token", expires=time.time() - 1)
    assert tok.expired()
    assert not tok.check("token")


def test_update_regenerates_expired_token():
    tok = XsrfToken(data="token", expires=time.time() - 1)
    tok.update()
    assert tok.token() != "token"
    assert not tok.expired()
    assert tok.check(tok.token())


def test_update_keeps_live_token():
    deadline = time.time() + 60
    tok = XsrfToken(data="token", expires=deadline)
    tok.update()
    assert tok.token() == "token"
    assert tok.expires == deadline


def test_regen_extends_expiry():
    tok = XsrfToken(data="token", expires=time.time() + 1)
    before = tok.expires
    tok.regen()
    assert tok.token() != "token"
    assert tok.expires > before


def test_request_from_json():
    req = Request.from_json(
        '{"method": "torrent-get", "arguments": {"fields": ["id", "name"]}, "tag": 7}')
    assert req == Request(method="torrent-get", args={"fields": ["id", "name"]}, tag=7)


def test_request_defaults_from_bytes():
    assert Request.from_json(b"{}") == Request("", {}, 0)


def test_request_null_members_take_defaults():
    req = Request.from_json('{"method": null, "arguments": null, "tag": null}')
    assert req == Request()


@pytest.mark.parametrize("text", [
    "[1, 2]",
    '{"tag": "x"}',
    '{"tag": true}',
    '{"tag": 1.5}',
    '{"method": 5}',
    '{"arguments": []}',
    "not json",
])
def test_request_rejects_bad_input(text):
    with pytest.raises(ValueError):
        Request.from_json(text)


def test_response_to_json():
    resp = Response(result="success", args={"torrents": []}, tag=3)
    decoded = json.loads(resp.to_json())
    assert decoded == {"result": "success", "arguments": {"torrents": []}, "tag": 3}
    assert list(decoded) == ["result", "arguments", "tag"]


def test_response_without_args_encodes_null():
    decoded = json.loads(Response(result="fields is not an array", tag=9).to_json())
    assert decoded["arguments"] is None
    assert decoded["tag"] == 9