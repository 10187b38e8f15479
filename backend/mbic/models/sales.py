"""
Sales, customer and rep tables (owned by the managed database, mapped read-only here)
"""
from sqlalchemy import Column, Integer, BigInteger, String, Date, Numeric, Index

from mbic.database import Base


class SalesRecord(Base):
    __tablename__ = "sales_demo"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    invoice_date = Column(Date, nullable=False)
    invoice_amount = Column(Numeric(14, 2), nullable=True)  # may arrive null or as text from imports
    customer_id = Column(Integer, nullable=False)
    rep_id = Column(Integer, nullable=True)
    invoice_number = Column(String, nullable=True)
    collection = Column(String, nullable=True)

    __table_args__ = (
        Index("idx_sales_demo_rep_date", "rep_id", "invoice_date"),
        Index("idx_sales_demo_customer_date", "customer_id", "invoice_date"),
    )

    def __repr__(self):
        return f"<SalesRecord {self.invoice_number or self.id} {self.invoice_date}>"


class Customer(Base):
    __tablename__ = "customers_demo"

    customer_id = Column(Integer, primary_key=True)
    dealer_name = Column(String, nullable=True)
    rep_id = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Customer {self.customer_id} {self.dealer_name}>"


class SalesRep(Base):
    __tablename__ = "sales_reps_demo"

    rep_id = Column(Integer, primary_key=True)
    rep_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    rep_phone = Column(String, nullable=True)

    def __repr__(self):
        return f"<SalesRep {self.rep_id} {self.rep_name}>"
