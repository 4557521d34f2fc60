"""Tags, templates, rule conditions, .netrc lookup, shared files and POP3 fetching for mail filtering."""

__version__ = "0.1.0"