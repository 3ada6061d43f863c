[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trafficreplay"
version = "0.1.0"
description = "Building blocks for handling captured TCP/HTTP traffic: packet parsing, pcap writing, VXLAN input, rate limiting and output formats"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "http", "pcap", "traffic", "replay", "vxlan", "kafka", "elasticsearch"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: Software Development :: Testing :: Traffic Generation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["trafficreplay"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
