from typing import List, Optional
import argparse, os, sys, time
from ExportConfig import ExportConfig, DEFAULT_OUTPUT_FILE
from UtilityController import *
from session import ExportSession
from Modules.IAM.Enumeration.enum_policy_bindings import run_module
from Modules.ResourceManager.Enumeration.enum_resources import list_organizations

def build_parser() -> argparse.ArgumentParser:

    parser = argparse.ArgumentParser(
        prog="policygopher",
        description="Dumps all members roles and permissions for a GCP organization",
        allow_abbrev=False
    )

    parser.add_argument("--file", type=str, required=False, help=f"CSV file output (default {DEFAULT_OUTPUT_FILE})")
    parser.add_argument("-o", "--org", type=str, required=False, help="Organization ID")
    parser.add_argument("-p", "--project", type=str, required=False, help="Project ID, used to find Org ID if unspecified")
    parser.add_argument("-c", "--credentials", type=str, required=False, help="credentials.json, used to find Org ID if Org ID or Project ID are unspecified (default $GOOGLE_APPLICATION_CREDENTIALS)")
    parser.add_argument("--config", type=str, required=False, help="JSON file with any of file/org/project/credentials/output_formats/history_log")
    parser.add_argument("--output-format", type=str, nargs="+", required=False, choices=sorted(ExportConfig.ALLOWED_OUTPUT_FORMATS), help="Also print the rows to the console in these formats")
    parser.add_argument("--list-organizations", action="store_true", required=False, help="List the organizations visible to the credentials and exit")
    parser.add_argument("--history-log", type=str, required=False, help="Append a line per run to this file")
    parser.add_argument("-v", "--debug", action="store_true", required=False, help="Get verbose data returned")

    return parser

def load_config(args) -> ExportConfig:

    config = ExportConfig.from_file(args.config) if args.config else ExportConfig()
    config.apply_overrides(
        output_file = args.file,
        organization_id = args.org,
        project_id = args.project,
        credentials_path = args.credentials,
        output_formats = args.output_format,
        history_log = args.history_log
    )
    if not config.credentials_path:
        config.credentials_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    config.debug = args.debug

    return config

def main(argv: Optional[List[str]] = None) -> int:

    args = build_parser().parse_args(argv)

    start = time.monotonic()

    try:
        config = load_config(args)
    except (OSError, ValueError) as e:
        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] Could not load config: {e}{UtilityTools.RESET}")
        return 1

    if config.debug:
        config.print_json_formatted()

    session = ExportSession(credentials_path = config.credentials_path, debug = config.debug)

    try:

        if args.list_organizations:
            clients = session.build_clients()
            list_organizations(clients["org"], debug = config.debug)
            return 0

        rows = run_module(config, session)

    except PolicyExportError as e:
        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] {e}{UtilityTools.RESET}")
        if config.history_log:
            UtilityTools.log_action(config.history_log, f"Export to {config.output_file} failed: {e}")
        return 1

    finally:
        UtilityTools.time_track(start, "Total time")

    if config.history_log and rows is not None:
        UtilityTools.log_action(config.history_log, f"Exported {len(rows)} member/role rows to {config.output_file}")

    return 0

if __name__ == "__main__":
    sys.dont_write_bytecode = True
    sys.exit(main())
