from sqlalchemy import Column, Integer, String, BigInteger, DateTime, Boolean, Index, Text
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()

# Срок по умолчанию для новой записи группы: 24 часа в миллисекундах
DEFAULT_KICK_AFTER_MS = 24 * 60 * 60 * 1000


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ⚙️ Настройки группы
# Наличие записи = бот активирован в группе. Деактивация удаляет запись целиком,
# поэтому срок и кастомное сообщение сбрасываются к значениям по умолчанию.
class GroupConfig(Base):
    __tablename__ = "group_configs"

    id = Column(Integer, primary_key=True)
    chat_id = Column(BigInteger, unique=True, nullable=False)
    # Через сколько миллисекунд после входа участник подлежит кику
    kick_after_ms = Column(BigInteger, nullable=False, default=DEFAULT_KICK_AFTER_MS)
    # Сообщение, которое отправляется участнику в ЛС перед киком
    custom_message = Column(Text, nullable=False, default="")
    custom_message_enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# 👤 Участник, которого нужно кикнуть после kick_date
# Запись не изменяется после создания: kick_date фиксируется при входе
# и не пересчитывается, если админ поменял срок группы.
class MembershipRecord(Base):
    __tablename__ = "kick_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    chat_id = Column(BigInteger, nullable=False)
    join_date = Column(DateTime, nullable=False, default=utcnow)
    kick_date = Column(DateTime, nullable=False, index=True)

    # Не уникальный: дубликаты допускаются хранилищем, см. track_member
    __table_args__ = (
        Index("ix_kick_members_user_chat", "user_id", "chat_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MembershipRecord id={self.id} user_id={self.user_id} "
            f"chat_id={self.chat_id} kick_date={self.kick_date}>"
        )
