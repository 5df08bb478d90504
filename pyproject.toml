[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rpcmesh"
version = "0.1.0"
description = "JSON-RPC 2.0 building blocks: message types, parameter parsing, method collections, subscription handles and resource limiting"
requires-python = ">=3.10"
dependencies = []
keywords = ["json-rpc", "rpc", "jsonrpc", "subscriptions", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["rpcmesh"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
