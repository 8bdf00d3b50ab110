[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pkgspecgen"
version = "0.1.0"
description = "Generate Go data model types from package-spec JSON Schema definitions"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["jsonschema", "code-generation", "go", "package-spec", "schema"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pkgspecgen = "pkgspecgen.generator:main"

[tool.hatch.build.targets.wheel]
packages = ["pkgspecgen"]

[tool.pytest.ini_options]
addopts = "-ra"
