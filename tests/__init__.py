"""
Homography core test suite

Structure:
- unit/: Unit tests for geometry, matching, paper detection, boundary and config
- integration/: HTTP service tests (FastAPI TestClient)
- fixtures/: Synthetic image builders
"""
