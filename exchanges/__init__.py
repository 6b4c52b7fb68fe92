"""
Exchange Connectors Package

This package contains the exchange connector modules. Each exchange has its
own subfolder holding the transport (session, throttle) and one module per
endpoint family.

Currently implemented:
- nse: National Stock Exchange of India (NSEClient)
"""
