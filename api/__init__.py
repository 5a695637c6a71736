"""HTTP API for the Clinical Analyzer."""
