[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mctpkit"
version = "0.1.0"
description = "MCTP packet headers, control message encoders, logging and serial/SMBus framing in pure Python"
requires-python = ">=3.10"
dependencies = []
keywords = ["mctp", "dmtf", "smbus", "serial", "management", "protocol", "framing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mctpkit"]

[tool.pytest.ini_options]
addopts = "-ra"
