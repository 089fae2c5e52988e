"""Default configuration values.

This module defines the built-in default configuration: supervisor settings
and the service table of the Apache Airavata all-in-one image, used when no
config file declares its own [[services]].

DEFAULT_CONFIG is the lowest-precedence source; deep_merge copies it before
higher sources are layered on.
"""

from typing import Any

_SERVER_START = "bin/airavata-server-start.sh"

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "supervisor": {
        "control_host": "127.0.0.1",
        "control_port": 9090,
        "probe_host": "127.0.0.1",
        "poll_interval": 0.5,
        "probe_timeout": 0.4,
        "liveness_interval": 5.0,
        "log_buffer_size": 10_000,
    },
    "logging": {
        "level": "info",
        "format": "text",
        "file": "",
    },
    "services": [
        {
            "name": "registry",
            "command": _SERVER_START,
            "args": ["regserver"],
            "working_dir": "$AIRAVATA_HOME",
            "ports": [8970],
            "critical": True,
        },
        {
            "name": "credential-store",
            "command": _SERVER_START,
            "args": ["credentialstore"],
            "working_dir": "$AIRAVATA_HOME",
            "ports": [8960],
            "critical": True,
        },
        {
            "name": "sharing-registry",
            "command": _SERVER_START,
            "args": ["sharing_registry"],
            "working_dir": "$AIRAVATA_HOME",
            "ports": [7878],
            "depends_on": ["registry"],
        },
        {
            "name": "profile-service",
            "command": _SERVER_START,
            "args": ["profile_service"],
            "working_dir": "$AIRAVATA_HOME",
            "ports": [8962],
            "depends_on": ["registry"],
        },
        {
            "name": "api-server",
            "command": _SERVER_START,
            "args": ["apiserver"],
            "working_dir": "$AIRAVATA_HOME",
            "ports": [8930, 9097],
            "readiness": {"kind": "http", "port": 8930, "path": "/"},
            "depends_on": [
                "registry",
                "credential-store",
                "sharing-registry",
                "profile-service",
            ],
            "critical": True,
            "start_timeout": 180.0,
        },
        {
            "name": "tunnel",
            "command": "bin/tunnel-server.sh",
            "working_dir": "$AIRAVATA_AGENT_HOME",
            "ports": [8000, 17000],
        },
        {
            "name": "agent-service",
            "command": "bin/agent-service.sh",
            "working_dir": "$AIRAVATA_AGENT_HOME",
            "ports": [18800, 19900],
            "depends_on": ["api-server", "tunnel"],
        },
        {
            "name": "research-service",
            "command": "bin/research-service.sh",
            "working_dir": "$AIRAVATA_RESEARCH_HOME",
            "ports": [18889, 19908],
            "depends_on": ["api-server"],
        },
        {
            "name": "file-server",
            "command": "bin/file-server.sh",
            "working_dir": "$AIRAVATA_FILE_HOME",
            "ports": [8050],
            "depends_on": ["api-server"],
        },
    ],
}
