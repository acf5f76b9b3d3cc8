"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    MSTEST_REGISTRY_FILE  : YAML file holding the MSTest installations
                            (default: mstest_installations.yaml)
    MSTEST_PATH_MAPPINGS  : Path prefix mappings applied when a tool home is
                            specialised for the local node, as
                            "from=to;from=to" (default: none)
    DOCKER_NODE_CONTAINER : When set, build steps triggered over HTTP run
                            inside this running container instead of locally
    LOG_LEVEL             : Root log level (default: INFO)
    LOG_DIR               : Directory for the daily log file (default: logs)
    ENABLE_FILE_LOG       : Write the daily log file (default: true)

Timeouts:
    No timeout is applied to a build step. The orchestrator that triggers the
    step owns the build-level timeout and cancels through the build context.
"""
import os
from dotenv import load_dotenv

load_dotenv()

MSTEST_REGISTRY_FILE = os.getenv("MSTEST_REGISTRY_FILE", "mstest_installations.yaml")
MSTEST_PATH_MAPPINGS = os.getenv("MSTEST_PATH_MAPPINGS", "")
DOCKER_NODE_CONTAINER = os.getenv("DOCKER_NODE_CONTAINER", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
ENABLE_FILE_LOG = os.getenv("ENABLE_FILE_LOG", "true").lower() == "true"

# Seconds between cancellation checks while a launched process is running
PROCESS_POLL_INTERVAL = float(os.getenv("PROCESS_POLL_INTERVAL", 0.2))
