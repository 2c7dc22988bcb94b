"""Personal finance ledger built from mobile-money and bank SMS notifications"""

__version__ = "0.1.0"
