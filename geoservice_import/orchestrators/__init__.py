"""Orchestration of fetch and import.

- import_pipeline: fetch a collection, skip unchanged queries, submit to a session
"""
