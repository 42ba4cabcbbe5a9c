"""Engine package: working copies, snapshots and the backup runner."""
