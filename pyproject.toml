[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zinx"
version = "0.4.0"
description = "A lightweight TCP server framework with length-prefixed message framing, routing and a worker pool"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "server", "framework", "networking", "router", "worker-pool"]
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
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
zinx-demo-server = "zinx.demo_server:main"
zinx-demo-client = "zinx.demo_client:main"

[tool.hatch.build.targets.wheel]
packages = ["zinx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
