"""Value objects: configuration snapshots and outcome types."""
