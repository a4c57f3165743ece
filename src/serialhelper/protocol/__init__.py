"""
The protocol package turns the byte stream from a conduit into records and correlates
requests written to the conduit with the record that answers them.

- framing: splits the byte stream into records (lines, idle-separated chunks or fixed-length chunks)
- records: decodes text records, opportunistically parsing them as JSON
- correlator: sends a request and waits for the next record, or a timeout
"""
