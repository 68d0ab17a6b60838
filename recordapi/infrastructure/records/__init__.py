"""
Storage adapters implementing the RecordCollection port.
"""
