"""
tabledump

Export the contents of a relational table to delimited text, a JSON array,
an embedded SQLite/DuckDB database, or a Parquet file.
"""

__version__ = "1.0.0"
