"""Data models shared by discovery and deletion."""
