"""
Archive storage in InfluxDB: connection, queries, writer and reader.
"""
