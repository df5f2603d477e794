"""FSHA binary codec: constants, packers, reader, writer and inspector."""
