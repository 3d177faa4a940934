from datetime import datetime
import pytz

IST = pytz.timezone('Asia/Kolkata')

def get_ist_time():
    """Get current time in IST timezone"""
    return datetime.now(IST)

def get_ist_time_naive():
    """Get current IST time as naive datetime for database storage"""
    return datetime.now(IST).replace(tzinfo=None)

def get_iso_timestamp():
    """Current IST time as an ISO string for document fields"""
    return get_ist_time().isoformat()
