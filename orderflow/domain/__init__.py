"""Domain packages: repositories and schemas per aggregate"""
