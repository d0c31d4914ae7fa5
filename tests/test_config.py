from secretly.config import Config, load_config


def test_defaults_when_environment_is_empty():
    config = load_config({})
    assert config == Config(port="8080", db_path="secretly.db")


def test_port_is_read_from_environment():
    config = load_config({"PORT": "9000"})
    assert config.port == "9000"
    assert config.db_path == "secretly.db"


def test_db_path_is_read_from_environment():
    config = load_config({"DB_PATH": "/tmp/data.db"})
    assert config.db_path == "/tmp/data.db"
    assert config.port == "8080"


def test_empty_value_still_overrides_default():
    config = load_config({"PORT": "", "DB_PATH": ""})
    assert config.port == ""
    assert config.db_path == ""


def test_unrelated_variables_are_ignored():
    config = load_config({"HOME": "/home/someone", "PATH": "/usr/bin"})
    assert config == Config()


def test_process_environment_is_used_by_default(monkeypatch):
    monkeypatch.setenv("PORT", "7070")
    monkeypatch.setenv("DB_PATH", "other.db")
    assert load_config() == Config(port="7070", db_path="other.db")