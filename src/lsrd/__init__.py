"""Link-state router daemon: neighbor discovery, LSA flooding and SPF routing."""

__version__ = "0.1.0"
