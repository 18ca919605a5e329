"""
Query Engine Module

Natural-language financial question -> SQL text + aggregated data table.

Main Entry Points:
    - engine.QueryEngine: full pipeline, returns a QueryResult
    - engine.process_query: one-shot helper using keys from the environment

Submodules are imported directly (e.g. ``from query_engine.engine import QueryEngine``);
data_acquisition depends on query_engine.models, so nothing is re-exported here.
"""
