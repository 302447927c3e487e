[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "proofrelay"
version = "0.1.0"
description = "Light-client proof relayer with a SQLite-backed health-check HTTP API"
requires-python = ">=3.10"
dependencies = [
    "aiohttp",
]
keywords = ["light-client", "proof", "relayer", "health-check", "sqlite", "aiohttp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
proofrelay = "proofrelay.service:main"

[tool.hatch.build.targets.wheel]
packages = ["proofrelay"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
