"""
Services Package

Pure analytics and parsing applied to data fetched by the exchange connectors:
- option_chain: Chain normalization, ATM, max pain, PCR, essential view
- symbol_parser: Rebuilds company lookup records from markup fragments
"""
