class MeshStatsError(Exception):
    """
    base class for every failure the collector reports. The
    orchestrator and the entrypoint only ever catch this family.
    """


class InvalidArgument(MeshStatsError):
    """
    malformed duration or end-date input.
    """


class ConfigurationError(MeshStatsError):
    pass


class MissingConfiguration(ConfigurationError):
    def __init__(self, names: "list[str]") -> "None":
        super().__init__(
            "missing required configuration: " + ", ".join(sorted(names))
        )
        self.names = sorted(names)


class RosterFetchError(MeshStatsError):
    pass


class UsageFetchError(MeshStatsError):
    def __init__(self, network_key: "str", direction: "str", message: "str") -> "None":
        super().__init__(f"usage query ({direction}) failed for {network_key}: {message}")
        self.network_key = network_key
        self.direction = direction


class PersistenceError(MeshStatsError):
    def __init__(self, name: "str", message: "str") -> "None":
        super().__init__(f"failed to persist usage period for {name!r}: {message}")
        self.name = name
