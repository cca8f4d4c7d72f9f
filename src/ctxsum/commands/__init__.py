"""ctxsum CLI commands - subcommand implementations, loaded lazily by ``ctxsum.cli``."""
