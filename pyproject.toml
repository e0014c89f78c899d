[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "protolite"
version = "0.1.0"
description = "Protobuf varint and wire helpers, a ProtoJSON reader and writer, and JSON support for wrapper, Empty and Any messages"
requires-python = ">=3.10"
dependencies = []
keywords = ["protobuf", "protojson", "varint", "serialization", "json"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["protolite"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
