# app/models/profile.py
# supabase auth.users를 보조하는 프로필 테이블 모델
# 가입 시 DB 트리거로 생성되고, 이 서비스에서는 물리 삭제하지 않는다 (deleted_at = soft delete)
from sqlalchemy import Column, String, DateTime, func
from app.db.session import Base

class Profile(Base):
    __tablename__ = "profiles"
    user_id = Column(String(36), primary_key=True)  # = auth.users.id (uuid)
    email = Column(String(255), nullable=False)
    display_name = Column(String(100))
    locale = Column(String(10), nullable=False, server_default="en")
    timezone = Column(String(64), nullable=False, server_default="UTC")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True))
    scheduled_for_deletion_until = Column(DateTime(timezone=True))
