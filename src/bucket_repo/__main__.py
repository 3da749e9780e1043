from bucket_repo.cli import main

main()
