"""
Shared fixtures: synthetic statement rows for each supported format.
"""
import pytest

from ..core.detectors import FormatRegistry
from ..core.runner import StatementRunner


@pytest.fixture(scope="session")
def registry():
    """Registry loaded from the bundled templates."""
    return FormatRegistry()


@pytest.fixture
def runner(registry):
    """Runner without any configured accounts."""
    return StatementRunner(registry)


@pytest.fixture
def casa_rows():
    """Savings account statement. 100.00 + 50.00 - 25.50 = 124.50."""
    return [
        " ",
        "Maybank Islamic Berhad (787435-M)",
        "15th Floor, Tower A, Dataran Maybank, 1, Jalan Maarof, 59000 Kuala Lumpur",
        "MUKA/ /PAGE :",
        "000001 IBS TEST BRANCH 頁 1",
        "TARIKH PENYATA",
        ":",
        "結單日期",
        "30/11/24",
        "JOHN DOE BIN SMITH",
        "STATEMENT DATE",
        "123 JALAN TEST 1/1 ,SECTION 1",
        "TEST CITY ,12345 ,SELANGOR ,MYS NOMBOR AKAUN",
        "戶號",
        ":",
        "123456-789012",
        "ACCOUNT",
        "NUMBER",
        "PROTECTED BY PIDM UP TO RM250,000 FOR EACH DEPOSITOR PERSONAL SAVER-i",
        "戶口進支項",
        "URUSNIAGA AKAUN/ /ACCOUNT TRANSACTIONS",
        "TARIKH MASUK BUTIR URUSNIAGA JUMLAH URUSNIAGA BAKI PENYATA",
        "ENTRY DATE TRANSACTION DESCRIPTION TRANSACTION AMOUNT STATEMENT BALANCE",
        "BEGINNING BALANCE 100.00",
        "01/11/24 TRANSFER IN 50.00+ 150.00",
        "   FROM TEST ACCOUNT",
        "   REF123456",
        "02/11/24 PAYMENT OUT 25.50- 124.50",
        "   TO MERCHANT ABC",
        "   PURCHASE",
        "ENDING BALANCE : 124.50",
        "TOTAL CREDIT : 50.00",
        "TOTAL DEBIT : 25.50",
    ]


@pytest.fixture
def mae_rows():
    """MAE wallet statement. 200.50 + 100.00 - 45.00 = 255.50."""
    return [
        " ",
        "Malayan Banking Berhad (3813-K)",
        "14th Floor, Menara Maybank, 100 Jalan Tun Perak, 50050 Kuala Lumpur, Malaysia",
        "TEST BRANCH MAIN",
        "MUKA/ /PAGE :",
        "頁 1",
        "TARIKH PENYATA",
        ":",
        "結單日期",
        "15/12/24",
        "MR / ENCIK JANE DOE BINTI AHMAD",
        "STATEMENT DATE",
        "456 JALAN SAMPLE 2/2 ,SECTION 2",
        "SAMPLE CITY ,54321 ,SELANGOR ,MYS NOMBOR AKAUN",
        "戶號",
        ":",
        "987654321012",
        "ACCOUNT",
        "NUMBER",
        "MAE",
        "戶口進支項",
        "BEGINNING BALANCE 200.50",
        "01/12/24 DUITNOW TRANSFER 100.00+ 300.50",
        "   FROM FRIEND",
        "02/12/24 PURCHASE 45.00- 255.50",
        "   SHOP XYZ",
        "ENDING BALANCE : 255.50",
        "TOTAL CREDIT : 100.00",
        "TOTAL DEBIT : 45.00",
    ]


@pytest.fixture
def cc_rows():
    """Single-card statement without card headers. 100 - 50 + 75.50 + 25 = 150.50."""
    return [
        "STATEMENT OF CREDIT CARD ACCOUNT",
        "PENYATA AKAUN KAD KREDIT",
        " ",
        "    Malayan Banking Berhad (3813-K)",
        "Page/ Halaman                   001 OF",
        "ENCIK JOHN DOE BIN SMITH",
        "Statement Date/ Payment Due Date/",
        "123 JALAN TEST 1/1",
        "Tarikh Penyata  Tarikh Akhir Pembayaran",
        "SECTION 1",
        "12345 TEST CITY",
        "28 NOV 24 18 DEC 24",
        "Menara Maybank",
        "100 Jalan Tun Perak",
        "50050 Kuala Lumpur",
        "Account Number/ Nombor Akaun  Current Balance/ Baki Semasa",
        "1234 5678 9012 3456 0.00 0.00",
        "  YOUR PREVIOUS STATEMENT BALANCE 100.00",
        "Posting Date / Transaction Date / Transaction Description / Amount(RM)",
        "29/10 29/10 PAYMENT RECEIVED 50.00CR",
        "01/11 01/11 ONLINE PURCHASE ABC 75.50",
        "05/11 05/11 RESTAURANT XYZ 25.00",
        "  TOTAL CREDIT THIS MONTH (JUMLAH KREDIT) 50.00",
        "  TOTAL DEBIT THIS MONTH (JUMLAH DEBIT) 100.50",
        "  SUB TOTAL/JUMLAH 150.50",
    ]


@pytest.fixture
def multi_card_rows():
    """Two cards on one statement."""
    return [
        "STATEMENT OF CREDIT CARD ACCOUNT",
        "ENCIK JOHN DOE BIN SMITH",
        "Statement Date/ Payment Due Date/",
        "28 NOV 24 18 DEC 24",
        "MAYBANK 2 PLAT MASTERCARD    :    5239 0000 0000 0002",
        "  YOUR PREVIOUS STATEMENT BALANCE 100.00",
        "29/10 29/10 PAYMENT RECEIVED 50.00CR",
        "01/11 01/11 ONLINE PURCHASE ABC 75.50",
        "  SUB TOTAL/JUMLAH 125.50",
        "MAYBANK 2 PLAT AMEX    :    3779 000000 00001",
        "  YOUR PREVIOUS STATEMENT BALANCE 20.00",
        "05/11 05/11 RESTAURANT XYZ 25.00",
        "  SUB TOTAL/JUMLAH 45.00",
    ]


@pytest.fixture
def wallet_rows():
    """E-wallet statement; the second transaction row renders two transactions."""
    return [
        "TNG eWallet Transactions Statement",
        "Registered Name JANE DOE",
        "Wallet ID 8888777766",
        "Transaction Period 01 November 2024 - 30 November 2024",
        "Date Status Transaction Type Reference Description Amount (RM) Wallet Balance",
        "Reload 01/11/2024 09:00 Online 111 222 +RM50.00 RM150.00",
        "Exit Toll: PLAZA A 02/11/2024 08:15 Highway 333 444 -RM5.20 RM144.80 "
        "DuitNow QR 03/11/2024 12:30 Cafe 555 666 -RM10.00 RM134.80",
    ]


@pytest.fixture
def email_rows():
    """E-mailed wallet history with continuation lines and a footer."""
    return [
        "Touch 'n Go eWallet Transaction History",
        "Wallet ID: 123456789",
        "Name: JANE DOE",
        "Date Status Transaction Type Reference Description Amount Wallet Balance",
        "1/11/2024 Success Reload 20241101001 Online Banking RM50.00 RM150.00",
        "FPX123 Paid on 1/11/2024 10:15 AM",
        "2/11/2024 Success Payment 20241102002 Merchant XYZ RM12.50 RM137.50",
        "REF9 Coffee shop",
        "* Terms apply",
    ]


EXPORT_HEADER = (
    "MFG Number,Trans. No.,Transaction Date/Time,Posted Date,Trans. Type,Sector,"
    "Entry Location,Entry SP,Exit Location,Exit SP,Reload Location,Trans. Amount (RM),"
    "Balance (RM),Vehicle Class,Device No.,Transaction ID,Vehicle Number"
)


@pytest.fixture
def export_csv():
    """Card export: start 100, debits 30, credits 50, end 120."""
    return "\n".join([
        EXPORT_HEADER,
        "2222222222,1,2025-01-01 10:00:00,2025-01-02 00:00:00,Usage,TOLL,TOLL A,SP_A,TOLL A,SP_A,,10.00,90.00,00,,TX001,",
        "2222222222,2,2025-01-02 10:00:00,2025-01-03 00:00:00,Usage,PARKING,PARK A,SP_B,PARK A,SP_B,,5.00,85.00,00,,TX002,",
        "2222222222,3,2025-01-03 10:00:00,2025-01-04 00:00:00,Reload,INTERNET RELOAD,OTA-TNGD,TD_TNG,OTA-TNGD,TD_TNG,OTA-TNGD,50.00,135.00,00,,TX003,",
        "2222222222,4,2025-01-04 10:00:00,2025-01-05 00:00:00,Usage,RAIL,STATION A,SP_C,STATION B,SP_D,,15.00,120.00,00,,TX004,",
    ]) + "\n"


@pytest.fixture
def export_records(export_csv):
    """Export rows already split into columns (header excluded)."""
    return [line.split(",") for line in export_csv.strip().split("\n")[1:]]
