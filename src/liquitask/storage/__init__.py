"""
Storage subsystem.

Components:
- store.py: cache-backed Store with NATIVE/BROWSER strategies, import/export
- native_file.py: async JSON-document native medium
- local_sqlite.py: synchronous, quota-limited local medium
"""
