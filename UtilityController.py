from datetime import datetime
import os, sys, time
import pandas as pd
from prettytable import PrettyTable
import shutil


########## Error Kinds
class PolicyExportError(Exception):
    pass

class ConfigurationError(PolicyExportError):

    NO_CREDENTIALS = "no-credentials"
    NO_PROJECT_IN_CREDENTIALS = "no-project-in-credentials"
    CREDENTIALS_FILE_UNREADABLE = "credentials-file-unreadable"
    ANCESTRY_LOOKUP_FAILED = "ancestry-lookup-failed"
    NO_ORGANIZATION_ANCESTOR = "no-organization-ancestor"

    def __init__(self, message, reason = None):
        super().__init__(message)
        self.reason = reason

class CollaboratorError(PolicyExportError):

    def __init__(self, message, permission = None, resource = None):
        super().__init__(message)
        self.permission = permission
        self.resource = resource

class ResolutionError(PolicyExportError):

    def __init__(self, role, tried_uris):
        self.role = role
        self.tried_uris = list(tried_uris)
        super().__init__(f"Unable to resolve role {role} (tried {', '.join(self.tried_uris)})")


class UtilityTools:

    # Define ANSI escape codes for colors
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"

    # Bold escape code
    BOLD = "\033[1m"

    CSV_HEADERS = ["Resource", "Type", "Member", "Role", "Permission"]

    @staticmethod
    def print_debug(message, debug = False):
        if debug:
            print(f"[DEBUG] {message}")

    # Goes to stderr so row-level failures don't get mixed in with progress output
    @staticmethod
    def print_error(message):
        print(f"{UtilityTools.RED}Error: {message}{UtilityTools.RESET}", file=sys.stderr)

    @staticmethod
    def print_403_api_disabled(service_type, resource_name):
        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] STATUS 403:{UtilityTools.RESET}{UtilityTools.RED} {service_type} API does not appear to be enabled for {resource_name}{UtilityTools.RESET}")

    @staticmethod
    def print_403_api_denied(permission_name, resource_name = None, project_id = None):
        printout = "the requested resource"
        if project_id:
            printout = "project " + project_id
        elif resource_name:
            printout = resource_name

        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] STATUS 403:{UtilityTools.RESET}{UtilityTools.RED} User does not have {permission_name} permissions on {printout}{UtilityTools.RESET}")

    @staticmethod
    def print_404_resource(resource_name):
        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] STATUS 404:{UtilityTools.RESET}{UtilityTools.RED} {resource_name} was not found{UtilityTools.RESET}")

    @staticmethod
    def print_500(resource_name, permission, error):
        print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] STATUS 500 (UNKNOWN):{UtilityTools.RESET}{UtilityTools.RED} {permission} failed for {resource_name}. See below:")
        print(str(error) + f"{UtilityTools.RESET}")

    @staticmethod
    def time_track(start, name):
        elapsed = time.monotonic() - start
        print(f"[*] {name} took {elapsed:.3f}s")
        return elapsed

    ########### CSV Export
    @staticmethod
    def build_permission_lines(rows):
        lines = []
        for row in rows:
            for permission in row.permissions:
                lines.append([row.resource, row.resource_type, row.member, row.role, permission])
        return lines

    # Write to tmp.<file> first and only move it into place once everything is on disk
    @staticmethod
    def export_csv(file_name, rows):

        directory, base_name = os.path.split(file_name)
        tmp_file_name = os.path.join(directory, f"tmp.{base_name}")

        df = pd.DataFrame(UtilityTools.build_permission_lines(rows), columns=UtilityTools.CSV_HEADERS)
        try:
            df.to_csv(tmp_file_name, index=False)
        except OSError as e:
            if os.path.exists(tmp_file_name):
                os.remove(tmp_file_name)
            raise PolicyExportError(f"Unable to write {tmp_file_name}: {e}") from e

        try:
            os.replace(tmp_file_name, file_name)
        except OSError as e:
            raise PolicyExportError(f"Unable to move {tmp_file_name} to {file_name}: {e}") from e

        return len(df.index)

    @staticmethod
    def summary_wrapup(organization_id, rows, output_format = ["table"]):

        table, txt, csv = (fmt in output_format for fmt in ("table", "txt", "csv"))

        data = UtilityTools.build_permission_lines(rows)

        terminal_width = shutil.get_terminal_size((100, 20)).columns
        breaker = "-" * (terminal_width - 10)
        print(f"{UtilityTools.BOLD}[*] {breaker} [*]{UtilityTools.RESET}")

        if len(rows) == 0:
            print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] Found 0 policy bindings in organization {organization_id}{UtilityTools.RESET}")
            return
        else:
            print(f"{UtilityTools.GREEN}{UtilityTools.BOLD}[*] Found {len(rows)} member/role bindings in organization {organization_id}{UtilityTools.RESET}")

        if table:
            print(f"{UtilityTools.BOLD}[*] TABLE OUTPUT ({organization_id}){UtilityTools.RESET}")
            output_table = PrettyTable(UtilityTools.CSV_HEADERS)
            for line in data:
                output_table.add_row(line)
            output_table.align = "l"
            output_table.max_table_width = int(terminal_width * 0.9)
            print(output_table)

        if txt:
            print(f"{UtilityTools.BOLD}[*] TXT OUTPUT ({organization_id}){UtilityTools.RESET}")
            for line in data:
                for header, value in zip(UtilityTools.CSV_HEADERS, line):
                    print(header + ": " + value)
                print("\n")

        if csv:
            print(f"{UtilityTools.BOLD}[*] CSV OUTPUT ({organization_id}){UtilityTools.RESET}")
            print(pd.DataFrame(data, columns=UtilityTools.CSV_HEADERS).to_csv(index=False))

        print(f"{UtilityTools.BOLD}[*] {breaker} [*]{UtilityTools.RESET}")

    @staticmethod
    def log_action(log_file, action):

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        directory = os.path.dirname(log_file)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)

        with open(log_file, "a") as file:
            file.write(f"[{timestamp}] {action}\n")
