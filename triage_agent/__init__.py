"""triage-agent: LLM-assisted triage and remediation of GitHub issues and pull requests."""

__version__ = "0.1.0"
