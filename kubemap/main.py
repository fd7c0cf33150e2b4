import argparse
import logging
import sys
from typing import List, Optional

from aiohttp import ClientError

from kubemap.client import ApiError
from kubemap.config import Context, get_selector
from kubemap.errors import MappingError
from kubemap.mapper import TypeMapper
from kubemap.model.api_resource import VersionedApiResource
from kubemap.tools.logs import configure_logging


def format_endpoint(endpoint: VersionedApiResource) -> str:
    scope = "namespaced" if endpoint.namespaced else "cluster"
    capabilities = ",".join(sorted(endpoint.capabilities)) or "-"
    return "%-60s %-30s %-10s %s" % (endpoint, endpoint.kind, scope, capabilities)


def list_endpoints(mapper: TypeMapper) -> None:
    for endpoint in mapper.list_endpoints():
        print(format_endpoint(endpoint))


def resolve(mapper: TypeMapper, api_version: Optional[str], kind: str) -> None:
    endpoint = mapper.get_endpoint_for(api_version, kind)
    print(format_endpoint(endpoint))


def run(args: argparse.Namespace, contexts: List[Context]) -> int:
    exit_code = 0

    for context in contexts:
        print("# %s (%s)" % (context.name, context.cluster.server))
        mapper = TypeMapper.for_context(context, read_timeout=args.read_timeout)

        try:
            if args.list:
                list_endpoints(mapper)
            else:
                resolve(mapper, args.api_version, args.kind)

        # one unreachable or forbidden cluster must not stop the others
        except (ApiError, ClientError, MappingError) as exc:
            print("error: [%s] %s" % (context.name, exc), file=sys.stderr)
            exit_code = 1

        finally:
            mapper.close()

    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Resolve kinds to the api endpoints a cluster serves them on"
    )
    parser.add_argument(
        "--context",
        dest="context",
        action="store",
        default="*",
        help="Kube contexts to select - matched like a filesystem wildcard",
    )
    parser.add_argument(
        "--api-version",
        dest="api_version",
        action="store",
        help="Api version of the kind, eg. v1 or apps/v1",
    )
    parser.add_argument(
        "--list",
        dest="list",
        action="store_true",
        help="List every endpoint the cluster serves instead of resolving a kind",
    )
    parser.add_argument(
        "--read-timeout",
        dest="read_timeout",
        action="store",
        type=float,
        default=15,
        help="Read timeout for discovery requests, in seconds",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        action="store",
        help="Write debug logs to this file",
    )
    parser.add_argument("kind", nargs="?", help="Kind to resolve, eg. Deployment")
    args = parser.parse_args(argv)

    if not args.list and not args.kind:
        parser.error("a kind is required unless --list is given")

    if args.log_file:
        configure_logging(filename=args.log_file)
    else:
        configure_logging(level=logging.WARNING)

    selector = get_selector()
    contexts = selector.fnmatch_context(args.context)
    if not contexts:
        print("No contexts match %r" % args.context, file=sys.stderr)
        return 1

    return run(args, contexts)


if __name__ == "__main__":
    sys.exit(main())
