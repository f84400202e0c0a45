"""
Constants and static configuration for the Wrapped BTC Race service
"""
from web3 import Web3

from wbtc_race.core.data_models import Chain, TokenDescriptor

# Wrapped-BTC ERC-20 contracts on Ethereum
ETHEREUM_TOKENS = (
    TokenDescriptor(symbol="wBTC", chain=Chain.ETHEREUM, address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"),
    TokenDescriptor(symbol="renBTC", chain=Chain.ETHEREUM, address="0xeb4c2781e4eba804ce9a9803c67d0893436bb27d"),
    TokenDescriptor(symbol="tBTCv1", chain=Chain.ETHEREUM, address="0x8daebade922df735c38c80c7ebd708af50815faa"),
    TokenDescriptor(symbol="tBTCv2", chain=Chain.ETHEREUM, address="0x18084fba666a33d37592fa2633fd49a74dd93a88"),
    TokenDescriptor(symbol="cbBTC", chain=Chain.ETHEREUM, address="0xcbb7c0000ab88b473b1f5afd9ef808440eed33bf"),
)

# Wrapped-BTC SPL mints on Solana
SOLANA_TOKENS = (
    TokenDescriptor(symbol="wBTC", chain=Chain.SOLANA, address="3NZ9JMVBmGAqocybic2c7LQCJScmgsAZ6vQqTDzcqmJh"),
    TokenDescriptor(symbol="renBTC", chain=Chain.SOLANA, address="CDJWUqTcYTVAKXAVXoQZFes5JUFc7owSeq7eMQcDSbo5"),
    TokenDescriptor(symbol="pBTC", chain=Chain.SOLANA, address="DYDWu4hE4MN3aH897xQ3sRTs5EAjJDmQsKLNhbpUiKun"),
    TokenDescriptor(symbol="cbBTC", chain=Chain.SOLANA, address="cbbtcf3aa214zXHbiAZQwf4122FBYbraNdFqgw4iMij"),
    TokenDescriptor(symbol="zBTC", chain=Chain.SOLANA, address="zBTCug3er3tLyffELcvDNrKkCymbPWysGcWihESYfLg"),
    TokenDescriptor(symbol="tBTC", chain=Chain.SOLANA, address="6DNSN2BJsaPFdFFc1zP37kkeNe4Usc1Sqkzr9C9vPWcU"),
)

# ERC-20 read-only functions, as 4-byte selectors
TOTAL_SUPPLY_SELECTOR = Web3.to_hex(Web3.keccak(text="totalSupply()")[:4])
DECIMALS_SELECTOR = Web3.to_hex(Web3.keccak(text="decimals()")[:4])

# Used when a token does not report its decimal places
DEFAULT_DECIMALS = 8

# SPL token mint account layout
MINT_SUPPLY_OFFSET = 36  # after the COption<Pubkey> mint authority
MINT_DECIMALS_OFFSET = 44

# Bitcoin
SATOSHIS_PER_BTC = 100_000_000
MAX_BTC_SUPPLY_SATOSHIS = 21_000_000 * SATOSHIS_PER_BTC

# Used when the SOL/BTC quote is unavailable (~$100/SOL vs ~$50,000/BTC)
FALLBACK_SOL_BTC_PRICE = 0.002

# Solana staking APY assumed by the race projection
DEFAULT_STAKING_APY = 0.10
