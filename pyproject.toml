[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "meshprobe"
version = "0.1.0"
description = "Helpers for end-to-end tests of service mesh clusters: versions, retries, templates, HTTP request options and Prometheus queries."
requires-python = ">=3.10"
keywords = ["service mesh", "istio", "testing", "kubernetes", "openshift", "prometheus", "retry"]
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
    "Topic :: Software Development :: Testing",
]
dependencies = [
    "requests",
    "pyyaml",
    "jinja2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["meshprobe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
