"""
Provisioning layer for devstrap.

Lifecycle logic on top of the installer catalog: detection, takeover of
external installs, the install orchestrator, profile export/import and
self-update.
"""
