#!/usr/bin/env python3
"""
Command line caller for the version authority.

Issues one build number and prints the version details as JSON, for use from
build scripts:

    buildversioning-generate --project MyProduct --config Main \
        --build-definition Nightly --requested-by ci --team-project Platform
"""

import argparse
import json
import sys

from buildversioning.exceptions import BuildVersioningException

EXIT_ERROR = 1
EXIT_RETRYABLE = 75  # EX_TEMPFAIL


def build_parser():
    parser = argparse.ArgumentParser(description="Generate the next build version of a project")
    parser.add_argument("--project", required=True, help="Project name")
    parser.add_argument("--config", required=True, help="Project configuration (version policy) name")
    parser.add_argument("--build-definition", required=True, help="Requesting build definition name")
    parser.add_argument("--requested-by", required=True, help="Requesting user")
    parser.add_argument("--team-project", required=True, help="Requesting team project")
    parser.add_argument("--lock-timeout", type=float, default=None, help="Lock wait in seconds (default 60)")
    parser.add_argument("--database-url", default=None, help="Override the configured database URI")
    return parser


def main(argv=None, app=None):
    args = build_parser().parse_args(argv)

    if app is None:
        from buildversioning.app import create_app

        config = {"SQLALCHEMY_DATABASE_URI": args.database_url} if args.database_url else None
        app = create_app(config=config)

    from buildversioning.services.version_authority import RequestContext, generate_version

    context = RequestContext(
        build_definition_name=args.build_definition,
        requested_by=args.requested_by,
        team_project_name=args.team_project,
    )
    with app.app_context():
        try:
            result = generate_version(args.project, args.config, context, lock_timeout_seconds=args.lock_timeout)
        except BuildVersioningException as e:
            print(json.dumps(e.to_dict()), file=sys.stderr)
            return EXIT_RETRYABLE if e.retry_safe else EXIT_ERROR

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
