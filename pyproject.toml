[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hotspotmodem"
version = "0.1.0"
description = "Host protocol, ring buffers and System Fusion modulation for a digital-voice hotspot modem"
requires-python = ">=3.10"
dependencies = []
keywords = ["ham radio", "hotspot", "modem", "system fusion", "ysf", "dmr", "digital voice"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hotspotmodem"]

[tool.pytest.ini_options]
addopts = "-ra"
