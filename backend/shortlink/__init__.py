"""URL shortener with rotating refresh sessions"""
