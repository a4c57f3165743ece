"""
Connection configuration. ConnectionConfig is the immutable description of a serial connection.
It can be built in code, from a mapping of options, or from layered configuration files
read with ConfigObj and validated against a schema.
"""
