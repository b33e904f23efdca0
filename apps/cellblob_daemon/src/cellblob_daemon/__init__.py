"""HTTP daemon serving SQLite blob cells through incremental blob I/O."""
