# Copyright contributors to the manifest-status project. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging

from manifest_status import applier
from manifest_status.models.status import Applier

JENKINS = {"BUILD_URL": "https://jenkins.test/job/deploy/42/", "JOB_NAME": "deploy", "BUILD_NUMBER": "42"}
CIRCLE = {"CIRCLE_BUILD_URL": "https://circleci.test/gh/org/repo/7", "CIRCLE_JOB": "release", "CIRCLE_BUILD_NUM": "7"}


def test_resolve_jenkins():
    a = applier.resolve({**JENKINS, "USER": "jenkins"})
    assert a == Applier(name="deploy#42", url="https://jenkins.test/job/deploy/42/")


def test_resolve_prefers_jenkins_over_circle():
    a = applier.resolve({**CIRCLE, **JENKINS})
    assert a.name == "deploy#42"


def test_resolve_circle():
    a = applier.resolve({**CIRCLE, "USER": "circleci"})
    assert a == Applier(name="release#7", url="https://circleci.test/gh/org/repo/7")


def test_resolve_incomplete_jenkins_falls_through():
    env = {"BUILD_URL": JENKINS["BUILD_URL"], "JOB_NAME": "deploy", "USER": "clux"}
    assert applier.resolve(env) == Applier(name="clux", url=None)


def test_resolve_user():
    a = applier.resolve({"USER": "clux", "HOME": "/home/clux"})
    assert a.name == "clux"
    assert a.url is None


def test_resolve_unknown_origin(caplog):
    with caplog.at_level(logging.WARNING, logger="manifest_status.applier"):
        a = applier.resolve({})
    assert a == Applier(name=applier.UNKNOWN_ORIGIN, url=None)
    assert "Could not infer applier" in caplog.text


def test_resolve_reads_process_environment(monkeypatch):
    for key in list(JENKINS) + list(CIRCLE):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("USER", "deployer")
    assert applier.resolve().name == "deployer"
