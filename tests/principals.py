"""Principals and document hashes shared across test modules."""

OWNER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
ALICE = "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5"
BOB = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
CAROL = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"
MALLORY = "ST2NEB84ASENDXKYGJPQW86YXQCEFEX2ZQPG87ND"

DOC_HASH = bytes.fromhex("aa" * 32)
OTHER_HASH = bytes.fromhex("bb" * 32)
