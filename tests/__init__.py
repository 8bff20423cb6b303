"""
Test suite for tasklink.

This package contains:
- Unit tests for the metadata codec, item builder, matcher and run log
- Sync engine tests against in-memory adapters
- End-to-end tests through the JSON file adapter and the command line
"""
