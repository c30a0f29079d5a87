import os
import stat

import pytest

from cowsqlkit.files import (
    INFO_FILE,
    JOIN_FILE,
    STORE_FILE,
    file_exists,
    file_marshal,
    file_remove,
    file_unmarshal,
    file_write,
)
from cowsqlkit.nodes import NodeInfo, NodeRole


def test_file_exists_reports_missing_then_present(tmp_path):
    assert file_exists(tmp_path, JOIN_FILE) is False
    file_write(tmp_path, JOIN_FILE, b"")
    assert file_exists(tmp_path, JOIN_FILE) is True


def test_file_exists_fails_when_directory_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"x")
    with pytest.raises(OSError, match=f"check if {INFO_FILE} exists"):
        file_exists(blocker, INFO_FILE)


def test_file_write_content_and_mode(tmp_path):
    file_write(tmp_path, "data", b"hello")
    path = tmp_path / "data"
    assert path.read_bytes() == b"hello"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_file_write_replaces_content(tmp_path):
    file_write(tmp_path, "data", b"first")
    file_write(tmp_path, "data", b"second")
    assert (tmp_path / "data").read_bytes() == b"second"
    assert sorted(os.listdir(tmp_path)) == ["data"]


def test_file_write_into_missing_directory_fails(tmp_path):
    with pytest.raises(FileNotFoundError, match="write data"):
        file_write(tmp_path / "missing", "data", b"x")


def test_marshal_unmarshal_node_round_trip(tmp_path):
    info = NodeInfo(id=42, address="127.0.0.1:9001", role=NodeRole.SPARE)
    file_marshal(tmp_path, INFO_FILE, info)
    assert NodeInfo.from_dict(file_unmarshal(tmp_path, INFO_FILE)) == info


def test_marshal_unmarshal_plain_data(tmp_path):
    data = [{"Address": "a:1"}, {"Address": "b:2"}]
    file_marshal(tmp_path, STORE_FILE, data)
    assert file_unmarshal(tmp_path, STORE_FILE) == data


def test_marshal_unsupported_object(tmp_path):
    with pytest.raises(ValueError, match="marshall x.yaml"):
        file_marshal(tmp_path, "x.yaml", object())
    assert file_exists(tmp_path, "x.yaml") is False


def test_unmarshal_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match=f"read {INFO_FILE}"):
        file_unmarshal(tmp_path, INFO_FILE)


def test_unmarshal_invalid_yaml(tmp_path):
    (tmp_path / INFO_FILE).write_text("key: [unterminated")
    with pytest.raises(ValueError, match=f"unmarshall {INFO_FILE}"):
        file_unmarshal(tmp_path, INFO_FILE)


def test_file_remove(tmp_path):
    file_write(tmp_path, JOIN_FILE, b"")
    file_remove(tmp_path, JOIN_FILE)
    assert file_exists(tmp_path, JOIN_FILE) is False
    with pytest.raises(FileNotFoundError):
        file_remove(tmp_path, JOIN_FILE)