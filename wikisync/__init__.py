"""wikisync: keeps a wiki in step with the repositories it documents."""

__version__ = "0.1.0"
