from avatar_crop_tool.app import main

main()
