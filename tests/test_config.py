import json

import pytest

from zinx.config import GlobalConfig


def _write(tmp_path, document):
    path = tmp_path / "zinx.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_defaults():
    config = GlobalConfig()
    assert config.name == "ZinxServerApp"
    assert config.host == "127.0.0.1"
    assert config.tcp_port == 8999
    assert config.version == "v0.4"
    assert config.max_conn == 1000
    assert config.max_package_size == 4096
    assert config.max_worker_task_len == 1024
    assert config.worker_pool_size == 10


def test_reload_overrides_given_keys_only(tmp_path):
    path = _write(tmp_path, {"Name": "Demo", "TcpPort": 7777, "WorkerPoolSize": 3})
    config = GlobalConfig()
    config.reload(path)
    assert config.name == "Demo"
    assert config.tcp_port == 7777
    assert config.worker_pool_size == 3
    assert config.host == GlobalConfig().host
    assert config.max_package_size == GlobalConfig().max_package_size


def test_reload_matches_keys_case_insensitively(tmp_path):
    path = _write(tmp_path, {"host": "0.0.0.0", "MAXCONN": 5, "maxPackageSize": 0})
    config = GlobalConfig()
    config.reload(path)
    assert config.host == "0.0.0.0"
    assert config.max_conn == 5
    assert config.max_package_size == 0


def test_reload_ignores_unknown_keys_and_nulls(tmp_path):
    path = _write(tmp_path, {"Unknown": 1, "Name": None})
    config = GlobalConfig()
    config.reload(path)
    assert config == GlobalConfig()


def test_reload_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        GlobalConfig().reload(tmp_path / "absent.json")


def test_reload_malformed_json(tmp_path):
    path = tmp_path / "zinx.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        GlobalConfig().reload(path)


def test_reload_rejects_non_object(tmp_path):
    path = _write(tmp_path, [1, 2, 3])
    with pytest.raises(ValueError):
        GlobalConfig().reload(path)


def test_reload_rejects_wrong_type_and_keeps_values(tmp_path):
    path = _write(tmp_path, {"Name": "Changed", "TcpPort": "8999"})
    config = GlobalConfig()
    with pytest.raises(TypeError):
        config.reload(path)
    assert config.name == GlobalConfig().name


def test_reload_rejects_negative_unsigned(tmp_path):
    path = _write(tmp_path, {"WorkerPoolSize": -1})
    with pytest.raises(ValueError):
        GlobalConfig().reload(path)


def test_reload_rejects_float_for_integer(tmp_path):
    path = _write(tmp_path, {"MaxConn": 1.5})
    with pytest.raises(TypeError):
        GlobalConfig().reload(path)