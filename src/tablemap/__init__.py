"""
tablemap: map sequences of typed records to tables and back.

Records are reflected once into ordered column descriptors, values pass
through a total coercion engine, and tables travel as streaming,
locale-invariant CSV (or through an external spreadsheet writer).
"""

__version__ = "0.1.0"
