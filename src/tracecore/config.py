"""Configuration for tracecore, read from environment variables at import."""

import os

# Logging settings
LOG_LEVEL = os.getenv("TRACECORE_LOG_LEVEL", "WARNING")
LOG_FORMAT = os.getenv(
    "TRACECORE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Taichi backend used by the packet kernels ("cpu", "gpu", "cuda", "vulkan", ...)
ARCH = os.getenv("TRACECORE_ARCH", "cpu")

# Extra debug logging for arithmetic degeneracies
DEBUG = os.getenv("TRACECORE_DEBUG", "false").lower() == "true"
