import os
from dataclasses import dataclass, fields
from enum import Enum

from meshstats.errors import MissingConfiguration


class ErrorPolicy(Enum):
    # stop the whole run on the first failed query or insert
    ABORT = "abort"
    # degrade failed queries to absent and skip failed inserts
    CONTINUE = "continue"


# field name -> environment variable, all required
_REQUIRED_ENV: "dict[str, str]" = {
    "airtable_api_key": "AIRTABLE_API_KEY",
    "airtable_base_id": "AIRTABLE_BASE_ID",
    "airtable_table_name": "AIRTABLE_TABLE_NAME",
    "graylog_url": "GRAYLOG_URL",
    "graylog_user": "GRAYLOG_USER",
    "graylog_pass": "GRAYLOG_PASS",
    "mongo_url": "MONGO_URL",
    "mongo_database": "MONGO_DATABASE",
    "mongo_collection": "MONGO_COLLECTION",
}

_SECRET_FIELDS = {"airtable_api_key", "graylog_pass", "mongo_url"}


@dataclass
class Config:
    airtable_api_key: "str" = ""
    airtable_base_id: "str" = ""
    airtable_table_name: "str" = ""

    # base url of the graylog web interface, ends with "/"
    graylog_url: "str" = ""
    graylog_user: "str" = ""
    graylog_pass: "str" = ""

    mongo_url: "str" = ""
    mongo_database: "str" = ""
    mongo_collection: "str" = ""

    # optional, metrics are pushed here after each run
    pushgateway_url: "str" = ""

    log_level: "str" = "info"
    log_format: "str" = "console"
    error_policy: "ErrorPolicy" = ErrorPolicy.ABORT
    # members processed at once, 1 keeps roster order
    concurrency: "int" = 1
    dry_run: "bool" = False

    def __post_init__(self) -> "None":
        if self.graylog_url and not self.graylog_url.endswith("/"):
            self.graylog_url += "/"

    @classmethod
    def from_env(cls) -> "Config":
        values = {
            name: os.environ.get(env, "").strip()
            for name, env in _REQUIRED_ENV.items()
        }
        return cls(
            pushgateway_url=os.environ.get("PUSHGATEWAY_URL", "").strip(),
            **values,
        )

    def validate(self) -> "None":
        """
        raises MissingConfiguration naming every required
        environment variable that was not set.
        """
        missing = [
            env for name, env in _REQUIRED_ENV.items() if not getattr(self, name)
        ]
        if missing:
            raise MissingConfiguration(missing)

    @property
    def metrics_push_enabled(self) -> "bool":
        return bool(self.pushgateway_url)

    def masked(self) -> "dict[str, object]":
        """
        returns the settings as a dict fit for logging, with
        credentials replaced.
        """
        out: "dict[str, object]" = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _SECRET_FIELDS and value:
                value = "***"
            elif isinstance(value, Enum):
                value = value.value
            out[f.name] = value
        return out
