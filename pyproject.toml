[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xdtorrent"
version = "0.4.6"
description = "BitTorrent building blocks for I2P and overlay networks: bencode, metainfo, filesystem drivers, tracker announces, SAM sessions and RPC message types"
requires-python = ">=3.10"
keywords = ["bittorrent", "torrent", "i2p", "sam", "tracker", "sftp", "bencode", "transmission"]
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
    "Topic :: Communications :: File Sharing",
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "paramiko",
    "dnspython",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["xdtorrent"]

[tool.hatch.build.targets.sdist]
include = ["xdtorrent", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
