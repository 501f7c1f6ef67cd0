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

import argparse
import logging
import sys
from pathlib import Path

import yaml

from manifest_status import kubectl
from manifest_status.app.config import StatusConfig
from manifest_status.common import log
from manifest_status.errors import StatusError
from manifest_status.models.manifest import Manifest
from manifest_status.status_client import StatusClient

logger = logging.getLogger(__name__)


def load_manifest(path: str) -> Manifest:
    with Path(path).open("r") as f:
        data = yaml.safe_load(f)
    return Manifest.model_validate(data)


def get(args, config: StatusConfig):
    client = StatusClient(Manifest(name=args.name, namespace=args.namespace), config=config)
    try:
        status = client.fetch()
    finally:
        client.close()
    print(yaml.safe_dump(status.model_dump(mode="json", by_alias=True, exclude_none=True), sort_keys=False), end="")


def update(args, config: StatusConfig):
    if args.phase == "apply" and not args.upgrade_reason:
        raise StatusError("--upgrade-reason is required for the apply phase")
    client = StatusClient(Manifest(name=args.name, namespace=args.namespace), config=config)
    try:
        if args.phase == "generate":
            client.update_generate(args.ok, args.reason, args.message)
        elif args.phase == "apply":
            client.update_apply(args.ok, args.upgrade_reason, args.reason, args.message)
        elif args.phase == "rollout":
            client.update_rollout(args.ok, args.reason, args.message)
    finally:
        client.close()
    logger.info(f"Updated {args.phase} status of {args.namespace}/{args.name}")


def apply(args, config: StatusConfig):
    # kubectl carries its own credentials, no API client is needed here
    manifest = load_manifest(args.file)
    changed = kubectl.apply_manifest(manifest, config)
    print(f"{manifest.namespace}/{manifest.name} {'configured' if changed else 'unchanged'}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Manifest deployment status reporting")
    parser.add_argument("-v", "--verbose", help="Display verbose output", action="count", default=0)
    parser.add_argument("--kubeconfig", type=str, help="Path to the kubeconfig file.")
    parser.add_argument("--context", type=str, help="Kubeconfig context to use.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_get = subparsers.add_parser("get", description="Show the status of a manifest", help="see `get -h`")
    parser_get.add_argument("name", type=str, help="Name of the manifest.")
    parser_get.add_argument("-n", "--namespace", type=str, help="Namespace of the manifest.", required=True)

    parser_update = subparsers.add_parser("update", description="Record the outcome of a phase", help="see `update -h`")
    parser_update.add_argument("phase", choices=["generate", "apply", "rollout"], help="The phase that finished.")
    parser_update.add_argument("name", type=str, help="Name of the manifest.")
    parser_update.add_argument("-n", "--namespace", type=str, help="Namespace of the manifest.", required=True)
    outcome = parser_update.add_mutually_exclusive_group(required=True)
    outcome.add_argument("--ok", dest="ok", action="store_true", help="The phase succeeded.")
    outcome.add_argument("--failed", dest="ok", action="store_false", help="The phase failed.")
    parser_update.add_argument("--reason", type=str, help="Machine readable failure reason, e.g. ImagePullError.")
    parser_update.add_argument("--message", type=str, help="One sentence failure message.")
    parser_update.add_argument("--upgrade-reason", type=str, help="Why an apply was triggered (apply phase only).")

    parser_apply = subparsers.add_parser("apply", description="Apply a manifest custom resource", help="see `apply -h`")
    parser_apply.add_argument("-f", "--file", type=str, help="Path to the manifest YAML.", required=True)

    args = parser.parse_args(argv)

    if args.verbose > 1:
        log.init(logging.DEBUG, logging.DEBUG)
    elif args.verbose > 0:
        log.init(logging.DEBUG)
    else:
        log.init()

    overrides = {k: v for k, v in {"kubeconfig": args.kubeconfig, "context": args.context}.items() if v}
    config = StatusConfig(**overrides)

    try:
        if args.command == "get":
            get(args, config)
        elif args.command == "update":
            update(args, config)
        elif args.command == "apply":
            apply(args, config)
    except StatusError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
