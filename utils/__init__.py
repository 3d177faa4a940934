# Utils package - logging, configuration checks and value normalizers
