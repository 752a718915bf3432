"""
Document Templates

Fixed wording for each document section. Only the named fields are filled;
the surrounding text is never rewritten per claim.
"""

# =============================================================================
# SHARED
# =============================================================================

HEADER_TEMPLATE = (
    "{claimant_name}\n"
    "{claimant_address}\n\n"
    "{letter_date}\n\n"
    "{defendant_name}\n"
    "{defendant_address}"
)

SALUTATION_TEMPLATE = "Dear {addressee},"

INTEREST_LINE_TEMPLATE = (
    "Interest under {legislation} at {rate} per annum "
    "from {interest_start} to {as_of}: {interest}"
)

COMPENSATION_LINE_TEMPLATE = (
    "Fixed compensation under the Late Payment of Commercial Debts (Interest) Act 1998: {compensation}"
)

DAILY_INTEREST_TEMPLATE = "Interest continues to accrue at {daily} per day until payment."


# =============================================================================
# POLITE PAYMENT REMINDER
# =============================================================================

CHASER_PARTICULARS_TEMPLATE = (
    "RE: PAYMENT REMINDER - {invoice_reference}\n\n"
    "We write regarding {invoice_reference} dated {invoice_date} for {principal}, "
    "{due_clause}"
)

CHASER_DUE_OVERDUE = (
    "which was due for payment on {due_date}. Our records show that this invoice "
    "remains unpaid and is now {days_overdue} days overdue."
)

CHASER_DUE_CURRENT = (
    "which falls due for payment on {due_date}. This is a courtesy reminder ahead of "
    "the due date."
)

CHASER_AMOUNTS_TEMPLATE = (
    "Principal: {principal}\n"
    "{interest_line}\n"
    "{compensation_line}"
    "Total now due: {total}\n\n"
    "{daily_line}"
)

CHASER_CLOSING_TEMPLATE = (
    "If payment has already been made, please accept our thanks and disregard this letter. "
    "Otherwise, please arrange payment of {total} within 7 days of the date of this letter.\n\n"
    "{sign_off},\n\n"
    "{claimant_name}"
)


# =============================================================================
# LETTER BEFORE ACTION (Pre-Action Protocol for Debt Claims)
# =============================================================================

LBA_PARTICULARS_TEMPLATE = (
    "RE: PRE-ACTION PROTOCOL FOR DEBT CLAIMS - OUTSTANDING DEBT OF {total}\n\n"
    "We write on behalf of {claimant_name} (\"the Creditor\") regarding {invoice_reference} "
    "dated {invoice_date} for {principal}, which fell due for payment on {due_date} "
    "and remains unpaid."
)

LBA_CHRONOLOGY_TEMPLATE = "CHRONOLOGY OF EVENTS\n\n{events}"

LBA_AMOUNTS_TEMPLATE = (
    "DEBT DETAILS\n\n"
    "Invoice Number: {invoice_number}\n"
    "Invoice Date: {invoice_date}\n"
    "Principal Amount: {principal}\n"
    "{interest_line}\n"
    "{compensation_line}"
    "Total Outstanding: {total}\n\n"
    "{daily_line}"
)

LBA_DEMAND_TEMPLATE = (
    "WHAT YOU MUST DO NOW\n\n"
    "In accordance with the Pre-Action Protocol for Debt Claims, you must respond to this "
    "letter within {response_days} days of the date of this letter, that is by {response_deadline}.\n\n"
    "If you dispute this debt, you must set out your reasons in writing within {response_days} days. "
    "If you fail to respond or do not pay the outstanding sum in full, court proceedings will be "
    "commenced against you without further notice.\n\n"
    "This may result in:\n"
    "- A County Court Judgment (CCJ) being registered against you\n"
    "- Additional court fees and legal costs being added to your debt\n"
    "- Enforcement action including enforcement agents and charging orders\n"
    "- Damage to your credit rating"
)

LBA_PROTOCOL_ANNEX = (
    "PRE-ACTION PROTOCOL COMPLIANCE\n\n"
    "This letter is sent in compliance with the Pre-Action Protocol for Debt Claims. "
    "Please find enclosed the documents required by the Protocol:\n"
    "- Annex 1: Information Sheet\n"
    "- Annex 2: Reply Form\n"
    "- Annex 3: Financial Statement"
)

LBA_CLOSING_TEMPLATE = (
    "We strongly encourage you to seek free debt advice from organisations such as "
    "Citizens Advice or StepChange if you are experiencing financial difficulties.\n\n"
    "{sign_off},\n\n"
    "{claimant_name}"
)

LBA_DISCLAIMER = (
    "IMPORTANT NOTICE: This letter was prepared using document assembly software. "
    "It is not legal advice. If you dispute this claim, you should seek independent "
    "legal advice immediately."
)


# =============================================================================
# FORM N1 - PARTICULARS OF CLAIM (CPR PD 16)
# =============================================================================

N1_PARTICULARS_TEMPLATE = (
    "PARTICULARS OF CLAIM\n\n"
    "1. The Claimant is {claimant_description}.\n\n"
    "2. The Defendant is {defendant_description}.\n\n"
    "3. {contract_description}\n\n"
    "4. By {invoice_reference} dated {invoice_date} the Claimant invoiced the Defendant "
    "for the sum of {principal}. Payment was due {payment_due_description}.\n\n"
    "5. In breach of the agreement, the Defendant has failed to pay the invoice. "
    "{breach_details}\n\n"
    "6. The relevant events are as follows:\n\n"
    "{events}\n\n"
    "7. The Claimant claims:\n\n"
    "   (a) the principal sum of {principal};\n\n"
    "   (b) interest of {interest} pursuant to {legislation} at the rate of {rate} "
    "per annum from {interest_start} to {as_of};\n\n"
    "   (c) {compensation_clause};\n\n"
    "   (d) continuing interest at the daily rate of {daily} pursuant to {legislation} "
    "from {as_of} until judgment or sooner payment;\n\n"
    "   (e) court fees and costs.\n\n"
    "8. The total claimed to {as_of} is {total}."
)

N1_AMOUNTS_TEMPLATE = (
    "Amount claimed: {total}\n"
    "Court fee: {court_fee}\n"
    "Legal representative's costs: {legal_costs}\n"
    "Total amount: {total_with_fees}"
)

N1_DISCLAIMER = (
    "DISCLAIMER: This document was prepared using document assembly software and is not "
    "legal advice. Before filing this claim with the court, you MUST:\n"
    "1. Review all details for accuracy\n"
    "2. Ensure you have complied with the Pre-Action Protocol for Debt Claims\n"
    "3. Seek independent legal advice from a qualified solicitor\n"
    "4. Sign the Statement of Truth only if all information is true to the best of your knowledge"
)

BRIEF_DETAILS_TEMPLATE = "Money claim for unpaid {invoice_reference} regarding {description} supplied to {defendant_name}"

BRIEF_DETAILS_MAX_WORDS = 24
