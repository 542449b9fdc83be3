"""Storage domain module - export artifact and document storage contract"""
