"""YouTrack core - issue field update pipeline.

Modules:
- config: environment-driven settings
- schemas: request/result models
- commands: update request -> command strings
- command_executor: per-command application
- result_aggregator: outcome classification and diagnostics
- field_discovery: legal values of project fields
- issue_update: end-to-end update pipeline with state refresh
"""

__version__ = "1.0.0"
