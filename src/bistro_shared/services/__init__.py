"""
Domain services. Every public function takes a :class:`~bistro_shared.db.Store`
as its first argument and returns plain data.
"""
