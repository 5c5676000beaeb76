[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xfr"
version = "0.9.10"
description = "Network bandwidth testing primitives: TCP receive loop and socket tuning, paced UDP transfer, jitter and loss tracking, kernel TCP statistics"
requires-python = ">=3.10"
dependencies = []
keywords = ["network", "bandwidth", "benchmark", "udp", "tcp", "jitter", "packet-loss", "asyncio"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["xfr"]

[tool.pytest.ini_options]
addopts = "-ra"
