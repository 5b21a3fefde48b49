"""
Tabungan Dashboard - Source Package

A personal savings tracker: signed transactions recorded under a small
set of categories, summarised into dashboard cards and charts.

DESIGN PRINCIPLES:
1. The formatter and aggregation engine are pure and never touch I/O
2. Storage is an external collaborator behind an abstract interface
3. Storage failures are caught at the boundary, never retried silently
4. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "Tabungan Dashboard Team"
