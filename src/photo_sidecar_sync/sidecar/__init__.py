"""XMP sidecar rendering, face-region geometry and annotation tag stripping."""
