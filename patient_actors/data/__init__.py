"""
Bundled persona content (starter patient prompt).
"""
