[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bankapi"
version = "0.1.0"
description = "A small JSON REST server over a bank database for ATM terminals and a web client"
requires-python = ">=3.10"
keywords = ["rest", "api", "bank", "atm", "flask", "sqlalchemy", "mysql"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask",
    "werkzeug",
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
bankapi = "bankapi.server:main"

[tool.hatch.build.targets.wheel]
packages = ["bankapi"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
