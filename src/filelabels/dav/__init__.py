"""WebDAV property support for file labels"""
