"""Linear release automation.

Reads the release version from project metadata, labels the Linear issues
that shipped with it, moves them to Done, and posts a changelog to Slack.
"""

__version__ = "0.1.0"
