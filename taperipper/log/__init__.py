"""Log outputs, filters, the console subscriber and its logging handler."""