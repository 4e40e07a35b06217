"""
아파트 매매 실거래가 조회 서비스
"""
__version__ = "0.1.0"
