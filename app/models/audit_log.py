# app/models/audit_log.py
# 감사 로그 테이블. insert 전용 (수정/삭제 없음)
from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, JSON, func
from app.db.session import Base

class AuditLog(Base):
    __tablename__ = "audit_logs"
    log_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False, index=True)
    resource_type = Column(String(32), nullable=False)
    resource_id = Column(String(36), index=True)
    old_values = Column(JSON)
    new_values = Column(JSON)
    user_id = Column(String(36), index=True)  # 행위자
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
