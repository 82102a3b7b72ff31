import json
from UtilityController import UtilityTools

DEFAULT_OUTPUT_FILE = "member_role_permissions.csv"

class ExportConfig:
    ALLOWED_OUTPUT_FORMATS = {"table", "csv", "txt"}

    # Settings a JSON config file may carry, mapped to attribute names
    JSON_KEYS = {
        "file": "output_file",
        "org": "organization_id",
        "project": "project_id",
        "credentials": "credentials_path",
        "output_formats": "output_formats",
        "history_log": "history_log",
    }

    def __init__(self, json_data=None):
        self.output_file = DEFAULT_OUTPUT_FILE
        self.organization_id = None
        self.project_id = None
        self.credentials_path = None
        self.output_formats = []
        self.history_log = None
        self.debug = False

        if json_data:
            self.from_json(json_data)

    @classmethod
    def from_file(cls, file_name):
        with open(file_name, "r") as file:
            return cls(file.read())

    def from_json(self, json_data):
        """Populate the settings from a JSON document."""
        data = json.loads(json_data)

        if not isinstance(data, dict):
            raise ValueError("Config must be a JSON object.")

        for key, attribute in self.JSON_KEYS.items():
            if key not in data or data[key] is None:
                continue
            if attribute == "output_formats":
                self.set_output_formats(data[key])
            else:
                self.set_string_setting(key, attribute, data[key])

    # Only flags the user actually passed replace what the config file said
    def apply_overrides(self, **overrides):
        for attribute, value in overrides.items():
            if value is None:
                continue
            if attribute == "output_formats":
                self.set_output_formats(value)
            else:
                self.set_string_setting(attribute, attribute, value)

    def to_json_string(self):
        """Serialize the current settings to a JSON string."""
        data = {key: getattr(self, attribute) for key, attribute in self.JSON_KEYS.items()}
        return json.dumps(data)

    def print_json_formatted(self):
        data = json.loads(self.to_json_string())
        max_key_length = max(len(key) for key in data.keys())

        for key, value in data.items():
            key_str = f"{key.rjust(max_key_length)}:"

            if value is None:
                value_str = f"{UtilityTools.RED}[Not Set]{UtilityTools.RESET}"
            else:
                value_str = f"{UtilityTools.GREEN}"+str(value)+f"{UtilityTools.RESET}"

            print(f"{UtilityTools.BOLD}{key_str}{UtilityTools.RESET} {value_str}")

    def set_string_setting(self, key, attribute, value):
        if not isinstance(value, str):
            raise ValueError(f"{key} must be a string, got {type(value).__name__}.")
        setattr(self, attribute, value)

    def set_output_formats(self, value):
        if isinstance(value, list):
            self.output_formats = [self._validate_output_format(v) for v in value]
        else:
            raise ValueError("output_formats must be a list of strings.")

    def _validate_output_format(self, value):
        if not isinstance(value, str):
            raise ValueError("output_formats must be a list of strings.")
        value_lower = value.lower()
        if value_lower not in self.ALLOWED_OUTPUT_FORMATS:
            raise ValueError(f"Invalid value '{value}'. Allowed values are: {', '.join(sorted(self.ALLOWED_OUTPUT_FORMATS))}.")
        return value_lower
