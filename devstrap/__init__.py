"""
devstrap - developer workstation bootstrapper.

Installs and manages language runtimes and developer tools (Git, GitHub CLI,
uv, Node.js, Bun, Rust, Go, JDK, Maven, Gradle, Claude Code) under a single
root directory and keeps the user's persistent environment in sync.
"""

__version__ = "0.1.0"
