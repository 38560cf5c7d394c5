from sqlalchemy import Column, ForeignKey, Index, Integer, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Profiles(Base):
    __tablename__ = 'profiles'

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, unique=True)
    booking_time_interval = Column(Integer)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    employees = relationship('Employees', back_populates='owner')
    services = relationship('Services', back_populates='owner')
    holidays = relationship('Holidays', back_populates='owner')


class Employees(Base):
    __tablename__ = 'employees'

    id = Column(Text, primary_key=True)
    owner_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    # auth identity of the employee when they log in themselves
    user_id = Column(Text, unique=True)
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    owner = relationship('Profiles', back_populates='employees')
    shifts = relationship('EmployeeShifts', back_populates='employee')
    appointments = relationship('Appointments', back_populates='employee')


class EmployeeShifts(Base):
    __tablename__ = 'employee_shifts'
    __table_args__ = (
        Index('idx_employee_shifts_day', 'employee_id', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    employee_id = Column(ForeignKey('employees.id', ondelete='CASCADE'), nullable=False)
    # 0 = Sunday .. 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)

    employee = relationship('Employees', back_populates='shifts')


class Services(Base):
    __tablename__ = 'services'

    id = Column(Text, primary_key=True)
    owner_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration = Column(Integer)
    booking_simultaneous_limit = Column(Integer)
    booking_future_limit = Column(Integer)
    booking_cancel_min_hours = Column(Integer)
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    owner = relationship('Profiles', back_populates='services')
    appointments = relationship('Appointments', back_populates='service')


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        Index('idx_appointments_employee_start', 'employee_id', 'start_time'),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    employee_id = Column(ForeignKey('employees.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'))
    client_id = Column(Text)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'scheduled'"))
    notes = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    employee = relationship('Employees', back_populates='appointments')
    service = relationship('Services', back_populates='appointments')


class Holidays(Base):
    __tablename__ = 'holidays'
    __table_args__ = (
        UniqueConstraint('owner_id', 'date', 'name'),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    blocking_type = Column(Text, nullable=False, server_default=text("'full_day'"))
    custom_start_time = Column(Text)
    custom_end_time = Column(Text)

    owner = relationship('Profiles', back_populates='holidays')
