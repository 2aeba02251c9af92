STEPS = ('program_selection', 'student_info', 'course_selection', 'payment_proof', 'confirmation')
PROGRAM_SELECTION, STUDENT_INFO, COURSE_SELECTION, PAYMENT_PROOF, CONFIRMATION = range(len(STEPS))
