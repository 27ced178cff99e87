from __future__ import annotations

import pytest

from lavapool.exceptions.base import LavaPoolException
from lavapool.exceptions.client import ConfigurationException, InvalidArgumentsException
from lavapool.exceptions.player import OutOfRangeException, PlayerException
from lavapool.exceptions.request import HTTPException, UnauthorizedException
from lavapool.nodes.config import NodeConfig


class TestNodeConfig:
    def test_camel_case_registration(self):
        config = NodeConfig.from_dict(
            {
                "name": "eu",
                "host": "lavalink.local",
                "port": 2333,
                "password": "secret",
                "secure": True,
                "reconnectInterval": 2500,
                "reconnectTries": 3,
                "resumeKey": "resume-me",
                "resumeTimeout": 30,
            }
        )
        assert config.key == "eu"
        assert config.secure is True
        assert config.reconnect_interval == 2.5
        assert config.reconnect_tries == 3
        assert config.resume_key == "resume-me"
        assert config.resume_timeout == 30

    def test_snake_case_interval_is_seconds(self):
        config = NodeConfig.from_dict({"host": "h", "port": 1, "password": "p", "reconnect_interval": 4})
        assert config.reconnect_interval == 4

    def test_key_falls_back_to_host(self):
        assert NodeConfig(host="lavalink.local", port=2333, password="p").key == "lavalink.local"

    def test_passthrough(self):
        config = NodeConfig(host="h", port=1, password="p")
        assert NodeConfig.from_dict(config) is config

    @pytest.mark.parametrize("missing", ["host", "port", "password"])
    def test_missing_required_option(self, missing):
        data = {"host": "h", "port": 1, "password": "p"}
        del data[missing]
        with pytest.raises(ConfigurationException, match=missing):
            NodeConfig.from_dict(data)

    def test_unknown_option(self):
        with pytest.raises(ConfigurationException, match="region"):
            NodeConfig.from_dict({"host": "h", "port": 1, "password": "p", "region": "eu"})

    @pytest.mark.parametrize("port", [0, 70000, "2333", True])
    def test_invalid_port(self, port):
        with pytest.raises(ConfigurationException):
            NodeConfig.from_dict({"host": "h", "port": port, "password": "p"})

    def test_invalid_reconnect_tries(self):
        with pytest.raises(ConfigurationException):
            NodeConfig(host="h", port=1, password="p", reconnect_tries=-2)

    @pytest.mark.parametrize("interval", ["5000", None, [5000]])
    def test_invalid_camel_case_interval(self, interval):
        with pytest.raises(ConfigurationException):
            NodeConfig.from_dict({"host": "h", "port": 1, "password": "p", "reconnectInterval": interval})

    @pytest.mark.parametrize("resume_key", [1234, b"key", ["key"]])
    def test_invalid_resume_key(self, resume_key):
        with pytest.raises(ConfigurationException):
            NodeConfig.from_dict({"host": "h", "port": 1, "password": "p", "resumeKey": resume_key})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationException):
            NodeConfig.from_dict(["h", 1, "p"])

    def test_repr_hides_password(self):
        config = NodeConfig(host="h", port=1, password="hunter2", resume_key="k")
        assert "hunter2" not in repr(config)


class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(OutOfRangeException, PlayerException)
        assert issubclass(OutOfRangeException, InvalidArgumentsException)
        assert issubclass(ConfigurationException, LavaPoolException)
        assert issubclass(UnauthorizedException, HTTPException)

    def test_http_exception_is_falsy(self):
        error = HTTPException(404, "Not Found")
        assert not error
        assert error.status == 404
        assert str(error) == "404: Not Found"
