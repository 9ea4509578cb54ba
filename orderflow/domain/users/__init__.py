"""Users domain - system actor lookups"""
