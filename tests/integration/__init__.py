"""
Integration tests for libgraph.

These tests drive complete flows over real directories: manifests on disk,
workspace scans, scope discovery, resolution and link planning.
"""
