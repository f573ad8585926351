"""docker save tarball reading."""
