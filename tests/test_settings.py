import io

import pytest

from xdtorrent import bencode
from xdtorrent.settings import FsSettings


def test_put_and_get():
    s = FsSettings()
    s.put("dir", "/data")
    assert s.get("dir", "x") == "/data"


def test_get_fallback():
    assert FsSettings().get("dir", "fallback") == "fallback"


def test_wire_format():
    s = FsSettings()
    s.put("dir", "data")
    buf = io.BytesIO()
    s.dump(buf)
    assert buf.getvalue() == b"d8:settingsd3:dir4:dataee"


def test_round_trip():
    s = FsSettings()
    s.put("dir", "/seed")
    s.put("other", "value")
    buf = io.BytesIO()
    s.dump(buf)
    buf.seek(0)
    loaded = FsSettings()
    loaded.load(buf)
    assert loaded == s


def test_load_missing_settings_keeps_opts():
    s = FsSettings()
    s.put("dir", "/keep")
    s.load(io.BytesIO(bencode.encode({})))
    assert s.get("dir") == "/keep"


def test_load_rejects_non_string_value():
    with pytest.raises(bencode.BencodeError):
        FsSettings().load(io.BytesIO(bencode.encode({"settings": {"dir": 1}})))