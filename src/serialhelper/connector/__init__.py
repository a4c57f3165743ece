"""
The connector owns the connection to a serial endpoint: it opens the port, keeps it open by
reconnecting when the link is lost, and pumps received bytes into the record feed.
"""
