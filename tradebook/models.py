# tradebook/models.py

from sqlalchemy import Column, Integer, String, Float, Date, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from tradebook.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)  # Asset name, used as grouping key
    quantity = Column(Numeric(24, 8, asdecimal=False), nullable=False)
    price_per_unit = Column(Numeric(24, 8, asdecimal=False), nullable=False)
    type = Column(String(4), nullable=False)  # "buy" or "sell"
    date = Column(Date, nullable=True, index=True)
    notes = Column(Text, nullable=True)


class Strategy(Base):
    __tablename__ = "strategies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_references = Column(Text, nullable=True)  # JSON array

    trades = relationship("LoggedTrade", back_populates="strategy")


class LoggedTrade(Base):
    __tablename__ = "trading_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)  # Symbol
    open_date = Column(String(50), nullable=False)
    close_date = Column(String(50), nullable=True)
    open_price = Column(Numeric(18, 8, asdecimal=False), nullable=False)
    close_price = Column(Numeric(18, 8, asdecimal=False), nullable=True)  # Null while the trade is open
    notes = Column(Text, nullable=True)
    source = Column(String(255), nullable=True)
    order_type = Column(String(16), nullable=True)  # "scalping", "swing" or null
    direction = Column(String(5), nullable=False)  # "long" or "short"
    level = Column(Integer, nullable=False)  # Leverage multiplier
    volume = Column(Float, nullable=False)
    strategy_id = Column(Integer, ForeignKey("strategies.id", ondelete="SET NULL"), nullable=True)
    reference_images = Column(Text, nullable=True)  # JSON array

    strategy = relationship("Strategy", back_populates="trades")

    @property
    def strategy_name(self):
        return self.strategy.name if self.strategy is not None else None

    @property
    def status(self):
        return "opening" if self.close_price is None else "closed"
