"""Core logic: prompt compiler, response generation, errors, metrics, autosave."""
