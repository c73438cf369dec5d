"""
The channel archive - this package stores process variable samples in an InfluxDB time series database
and reads them back by channel and time range.

These subpackages exist:

config: the engine/group/channel configuration model, and loading it from a hierarchical description
influxdb: connecting to the store, building queries, the batched archive writer and the result reader

"""
