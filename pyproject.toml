[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bark"
version = "0.1.0"
description = "Synchronised multicast audio streaming over a local network"
requires-python = ">=3.11"
dependencies = []
keywords = ["audio", "multicast", "streaming", "udp", "pcm", "synchronised playback"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bark = "bark.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["bark"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
