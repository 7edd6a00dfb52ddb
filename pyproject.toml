[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lanchat"
version = "0.1.0"
description = "Serverless peer-to-peer chat for the local network over UDP broadcast and multicast"
requires-python = ">=3.10"
keywords = ["chat", "p2p", "udp", "broadcast", "multicast", "lan"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: System :: Networking",
]
dependencies = [
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
lanchat = "lanchat.chat:main"

[tool.hatch.build.targets.wheel]
packages = ["lanchat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
