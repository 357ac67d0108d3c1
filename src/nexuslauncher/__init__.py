"""nexuslauncher -- one-click installer and launcher for the Nexus network CLI.

Serves a small control page over HTTP. Starting a run installs the
``nexus-network`` CLI when it is missing, puts it on PATH and launches a
node under a pseudo-terminal, streaming every step to the browser as
Server-Sent Events.
"""

__version__ = "0.1.0"
