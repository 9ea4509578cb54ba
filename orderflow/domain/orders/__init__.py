"""Orders domain - lifecycle queries, time windows and batch results"""
