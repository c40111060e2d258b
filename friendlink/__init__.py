"""Friend relationships, direct chat provisioning and notification delivery."""
