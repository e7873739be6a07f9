# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os

import nox

DEFAULT_PYTHON_VERSION = "3.10"
UNIT_TEST_PYTHON_VERSIONS = ["3.8", "3.9", "3.10", "3.11", "3.12", "3.13"]

nox.options.sessions = ["unit", "system_emulated"]


def install_package(session):
    session.install("-e", ".[test]")


def default(session):
    """Run the unit test suite."""
    install_package(session)
    session.run(
        "py.test",
        "--quiet",
        "--cov=bigtable_client",
        "--cov=tests.unit",
        "--cov-append",
        "--cov-config=.coveragerc",
        "--cov-report=",
        "--cov-fail-under=0",
        os.path.join("tests", "unit"),
        *session.posargs,
    )


@nox.session(python=UNIT_TEST_PYTHON_VERSIONS)
def unit(session):
    default(session)


@nox.session(python=DEFAULT_PYTHON_VERSION)
def system_emulated(session):
    """Run the system tests against a local Bigtable emulator."""
    import subprocess

    try:
        subprocess.call(["gcloud", "--version"])
    except OSError:
        session.skip("gcloud not found but required for emulator support")

    # Currently, CI/CD doesn't have beta component of gcloud.
    subprocess.call(["gcloud", "components", "install", "beta", "bigtable"])

    hostport = "localhost:8789"
    session.env["BIGTABLE_EMULATOR_HOST"] = hostport

    p = subprocess.Popen(
        ["gcloud", "beta", "emulators", "bigtable", "start", "--host-port", hostport]
    )

    try:
        system(session)
    finally:
        p.kill()


@nox.session(python=DEFAULT_PYTHON_VERSION)
def system(session):
    """Run the system test suite."""
    system_test_folder_path = os.path.join("tests", "system")

    if not os.environ.get("BIGTABLE_EMULATOR_HOST", ""):
        session.skip("BIGTABLE_EMULATOR_HOST must be set for system tests")

    install_package(session)
    session.run(
        "py.test",
        "--quiet",
        system_test_folder_path,
        *session.posargs,
    )


@nox.session(python=DEFAULT_PYTHON_VERSION)
def cover(session):
    """Report the combined coverage and erase the data."""
    session.install("coverage", "pytest-cov")
    session.run("coverage", "report", "--show-missing", "--fail-under=90")
    session.run("coverage", "erase")
