[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mailsieve"
version = "0.1.0"
description = "Building blocks for a mail fetching and filtering agent: tags, template expansion, rule conditions, .netrc lookup, shared mapped files and a step-driven POP3 fetcher."
requires-python = ">=3.10"
dependencies = []
keywords = ["mail", "filter", "pop3", "netrc", "rules", "templates"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email :: Filters",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mailsieve"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
