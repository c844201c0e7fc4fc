"""HTTP API for nano-dbbackup."""
