"""
Request server: serve extraction requests against a resident graph.

Components:
    - RequestServer: Runs filters, extraction, assembly and layout per request
    - FifoChannel: Named-pipe request channel with timed, re-armed waits
    - send_record(): Client side of the channel
    - encode_request()/decode_request(): Fixed-order, delimiter-joined records
"""

from callslice.server.channel import FifoChannel, send_record
from callslice.server.daemon import RequestServer, artifact_path
from callslice.server.protocol import decode_request, encode_request

__all__ = [
    "FifoChannel",
    "RequestServer",
    "artifact_path",
    "decode_request",
    "encode_request",
    "send_record",
]
