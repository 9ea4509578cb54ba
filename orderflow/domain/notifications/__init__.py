"""Notifications domain - reminder and recipient records"""
