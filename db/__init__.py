"""
db/ - Database Layer
====================
Handles PostgreSQL connections and schema initialization.
The repositories never import from here: they receive an open connection
from whoever owns it (main.py, the tests, an application server).
"""
