"""Core library: configuration, repository layout, and git object access.

Primary modules:
- ``repo_host.lib.repo`` for the on-disk repository layout and provisioning.
- ``repo_host.lib.git_store`` for branch, HEAD, and blob resolution.
- ``repo_host.lib.tree`` for materializing trees into node graphs.
"""
