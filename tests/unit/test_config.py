"""Unit tests for connection parameters and the tether.yaml settings."""

from dataclasses import FrozenInstanceError
import json

import pytest
import yaml

from tether.config.params import ConnectionParameters
from tether.config.settings import TetherConfig
from tether.errors import ProtocolError

pytestmark = pytest.mark.unit


class TestConnectionParameters:
    """Test cases for ConnectionParameters."""

    def test_default_from_environment(self, monkeypatch, temp_dir):
        monkeypatch.setenv("HOME", str(temp_dir))
        monkeypatch.setenv("USER", "carol")
        monkeypatch.setattr("sys.argv", ["/opt/apps/solver"])

        params = ConnectionParameters.default({"hosts_file": "hosts.yaml"})

        assert params.username == "carol"
        assert params.private_key == str(temp_dir / ".ssh" / "id_rsa")
        assert params.public_key == str(temp_dir / ".ssh" / "id_rsa.pub")
        assert params.known_hosts == str(temp_dir / ".ssh" / "known_hosts")
        assert params.local_path == "/opt/apps/solver"
        assert params.remote_path == "solver"
        assert params.passphrase == ""
        assert params.credentials == {"hosts_file": "hosts.yaml"}

    def test_immutable(self, params):
        with pytest.raises(FrozenInstanceError):
            params.username = "mallory"

    def test_replace_returns_copy(self, params):
        changed = params.replace(remote_path="bin/app")
        assert changed.remote_path == "bin/app"
        assert params.remote_path == "worker-app"

    def test_encode_decode(self, params):
        decoded = ConnectionParameters.decode(params.encode())
        assert decoded == params

    def test_encode_is_json_object(self, params):
        data = json.loads(params.encode())
        assert data["username"] == "alice"
        assert data["credentials"] == {"groups": {}}

    def test_decode_fills_missing_fields(self):
        params = ConnectionParameters.decode(b'{"username": "bob"}')
        assert params.username == "bob"
        assert params.private_key == ""
        assert params.credentials == {}

    @pytest.mark.parametrize("payload", [b"", b"[1, 2]", b"\xff", b"{broken"])
    def test_decode_malformed(self, payload):
        with pytest.raises(ProtocolError, match="Malformed connection parameters"):
            ConnectionParameters.decode(payload)

    def test_repr_hides_passphrase(self, params):
        secret = params.replace(passphrase="hunter2")
        assert "hunter2" not in repr(secret)
        assert "alice" in repr(secret)


class TestTetherConfig:
    """Test cases for TetherConfig."""

    def test_defaults_without_file(self, monkeypatch, temp_dir):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir))

        config = TetherConfig.load()

        assert config.logging.level == "INFO"
        assert config.directory.group is None
        assert config.ssh.username is None

    def test_load_explicit_file(self, temp_dir):
        config_file = temp_dir / "tether.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "ssh": {"username": "dave", "private_key": "~/keys/cluster"},
                    "directory": {"hosts_file": "hosts.yaml", "group": "demo"},
                    "logging": {"level": "DEBUG"},
                }
            )
        )

        config = TetherConfig.load(config_file)

        assert config.ssh.username == "dave"
        assert config.directory.group == "demo"
        assert config.logging.level == "DEBUG"
        assert config.logging.file is None

    def test_search_current_directory(self, monkeypatch, temp_dir):
        (temp_dir / "config").mkdir()
        (temp_dir / "config" / "tether.yaml").write_text("directory:\n  group: found\n")
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir))

        assert TetherConfig.load().directory.group == "found"

    def test_empty_file(self, temp_dir):
        config_file = temp_dir / "tether.yaml"
        config_file.write_text("")
        assert TetherConfig.load(config_file).logging.level == "INFO"

    def test_non_mapping_file(self, temp_dir):
        config_file = temp_dir / "tether.yaml"
        config_file.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            TetherConfig.load(config_file)

    def test_save_and_reload(self, temp_dir):
        config = TetherConfig()
        config.directory.group = "demo"
        config.ssh.username = "erin"

        output = temp_dir / "nested" / "tether.yaml"
        config.save(output)

        reloaded = TetherConfig.load(output)
        assert reloaded.to_dict() == config.to_dict()

    def test_connection_parameters_overrides(self, monkeypatch, temp_dir):
        monkeypatch.setenv("HOME", str(temp_dir))
        monkeypatch.setenv("USER", "carol")

        config = TetherConfig.from_dict(
            {
                "ssh": {
                    "username": "dave",
                    "private_key": "~/keys/cluster",
                    "local_path": "/build/out/solver",
                },
                "directory": {"hosts_file": "~/hosts.yaml", "group": "demo"},
            }
        )
        params = config.connection_parameters()

        assert params.username == "dave"
        assert params.private_key == str(temp_dir / "keys" / "cluster")
        assert params.public_key == str(temp_dir / ".ssh" / "id_rsa.pub")
        assert params.local_path == "/build/out/solver"
        assert params.remote_path == "solver"
        assert params.credentials == {"hosts_file": str(temp_dir / "hosts.yaml")}

    def test_connection_parameters_explicit_remote_path(self):
        config = TetherConfig.from_dict(
            {"ssh": {"local_path": "/build/out/solver", "remote_path": "bin/solver"}}
        )
        params = config.connection_parameters()
        assert params.remote_path == "bin/solver"
        assert params.credentials == {}
