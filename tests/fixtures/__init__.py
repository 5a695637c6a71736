"""Test fixtures for the Clinical Analyzer."""
