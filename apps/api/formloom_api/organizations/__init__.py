"""Organization and workspace provisioning."""
