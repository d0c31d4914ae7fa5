[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "secretly"
version = "0.1.0"
description = "Store named environments and their key/value settings in SQLite behind a JSON WSGI API"
requires-python = ">=3.10"
keywords = ["environment", "variables", "secrets", "configuration", "wsgi", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "werkzeug",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["secretly"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
